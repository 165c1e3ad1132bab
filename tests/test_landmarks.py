from types import SimpleNamespace

import numpy as np

from mesh_tracking.config import MeshConfig
from mesh_tracking.landmarks import MediaPipeMeshModel


class FakeFaceMesh:
    def __init__(self, faces):
        self.faces = faces
        self.images = []
        self.closed = False

    def process(self, image):
        self.images.append(image)
        return SimpleNamespace(multi_face_landmarks=self.faces)

    def close(self):
        self.closed = True


def face(*points):
    return SimpleNamespace(landmark=[SimpleNamespace(x=x, y=y, z=z) for x, y, z in points])


def test_mesh_model_returns_normalized_landmarks():
    fake = FakeFaceMesh([face((0.1, 0.2, 0.3), (0.9, 0.8, -0.1))])
    model = MediaPipeMeshModel(MeshConfig(), face_mesh=fake)

    landmarks, confidence = model(np.full((192, 192, 3), 0.5, dtype=np.float32))

    np.testing.assert_allclose(landmarks, [(0.1, 0.2, 0.3), (0.9, 0.8, -0.1)], rtol=1e-6)
    assert confidence == 1.0
    image = fake.images[0]
    assert image.dtype == np.uint8
    assert image.shape == (192, 192, 3)
    assert not image.flags.writeable
    assert image[0, 0, 0] == 127


def test_mesh_model_without_face_reports_zero_confidence():
    model = MediaPipeMeshModel(MeshConfig(), face_mesh=FakeFaceMesh(None))
    landmarks, confidence = model(np.zeros((192, 192, 3), dtype=np.float32))
    assert confidence == 0.0
    assert landmarks.shape == (1, 3)


def test_mesh_model_close():
    fake = FakeFaceMesh(None)
    MediaPipeMeshModel(MeshConfig(), face_mesh=fake).close()
    assert fake.closed
