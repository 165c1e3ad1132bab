import numpy as np
import pytest

from mesh_tracking.common import ContractViolation
from mesh_tracking.config import DetectorConfig
from mesh_tracking.detector import DnnFaceDetector


class FakeNet:
    def __init__(self, outputs):
        self.outputs = outputs
        self.inputs = []

    def setInput(self, blob):
        self.inputs.append(blob)

    def getUnconnectedOutLayersNames(self):
        return ("regressors", "classificators")

    def forward(self, names):
        return self.outputs


def blazeface_outputs():
    regressors = np.zeros((1, 896, 16), dtype=np.float32)
    regressors[0, 5, :4] = (1, 2, 3, 4)
    classificators = np.full((1, 896, 1), -10.0, dtype=np.float32)
    classificators[0, 5, 0] = 3.0
    return [regressors, classificators]


def test_detector_returns_scores_and_boxes():
    net = FakeNet(blazeface_outputs())
    detector = DnnFaceDetector(DetectorConfig(), net=net)

    scores, boxes = detector(np.zeros((128, 128, 3), dtype=np.float32))

    assert scores.shape == (896,)
    assert boxes.shape == (896, 16)
    assert scores[5] == 3.0
    np.testing.assert_allclose(boxes[5, :4], (1, 2, 3, 4))
    assert net.inputs[0].shape == (1, 128, 128, 3)


def test_detector_output_order_does_not_matter():
    net = FakeNet(list(reversed(blazeface_outputs())))
    scores, boxes = DnnFaceDetector(DetectorConfig(), net=net)(np.zeros((128, 128, 3)))
    assert scores.shape == (896,)
    assert boxes.shape == (896, 16)


def test_detector_channels_first_input():
    net = FakeNet(blazeface_outputs())
    DnnFaceDetector(DetectorConfig(channels_last=False), net=net)(np.zeros((128, 128, 3)))
    assert net.inputs[0].shape == (1, 3, 128, 128)


def test_detector_rejects_unexpected_outputs():
    net = FakeNet([np.zeros((1, 896, 2))])
    with pytest.raises(ContractViolation):
        DnnFaceDetector(DetectorConfig(), net=net)(np.zeros((128, 128, 3)))


def test_detector_requires_model_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        DnnFaceDetector(DetectorConfig(model_path=None))
    with pytest.raises(FileNotFoundError):
        DnnFaceDetector(DetectorConfig(model_path=str(tmp_path / "missing.onnx")))


def test_detector_rejects_unknown_backend(tmp_path):
    model = tmp_path / "blazeface.onnx"
    model.write_bytes(b"")
    with pytest.raises(ValueError):
        DnnFaceDetector(DetectorConfig(model_path=str(model), backend="tpu"))
