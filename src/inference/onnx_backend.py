"""
ONNX Runtime model backend.

Wraps an exported YOLO graph (NMS included) so it satisfies DetectionModel.
Graphs exported channels-first are transposed transparently; callers always
hand over NHWC tensors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import onnxruntime as ort

from .backend import DetectionModel


_GPU_PRIORITY = [
    "TensorrtExecutionProvider",
    "CUDAExecutionProvider",
    "ROCMExecutionProvider",
    "DmlExecutionProvider",
    "CoreMLExecutionProvider",
    "OpenVINOExecutionProvider",
]

_PROVIDER_ALIASES = {
    "tensorrt": "TensorrtExecutionProvider",
    "cuda": "CUDAExecutionProvider",
    "rocm": "ROCMExecutionProvider",
    "dml": "DmlExecutionProvider",
    "coreml": "CoreMLExecutionProvider",
    "openvino": "OpenVINOExecutionProvider",
}


@dataclass(frozen=True)
class OnnxModelConfig:
    path: str
    provider: str = "auto"
    device_id: int = 0
    # (width, height) used when the graph declares dynamic spatial dims
    input_size: Sequence[int] = field(default_factory=lambda: (640, 640))


def build_providers(provider: str, device_id: int = 0) -> List:
    """Resolve a provider name ("auto", "cpu", "cuda", ...) to an ORT provider list."""
    available = set(ort.get_available_providers())
    mode = provider.lower()
    if mode not in _PROVIDER_ALIASES and mode not in ("auto", "cpu"):
        raise ValueError(
            f"provider must be one of: {sorted(list(_PROVIDER_ALIASES) + ['auto', 'cpu'])}"
        )

    resolved: List = []
    if mode == "auto":
        for name in _GPU_PRIORITY:
            if name in available:
                resolved.append(name)
                break
    elif mode != "cpu":
        name = _PROVIDER_ALIASES[mode]
        if name not in available:
            raise RuntimeError(
                f"{name} is not available in this environment. "
                f"Available providers: {sorted(available)}"
            )
        if name == "DmlExecutionProvider":
            resolved.append((name, {"device_id": device_id}))
        else:
            resolved.append(name)

    if "CPUExecutionProvider" in available:
        resolved.append("CPUExecutionProvider")

    if not resolved:
        raise RuntimeError(
            f"No compatible execution provider found. Available providers: {sorted(available)}"
        )
    return resolved


class OnnxDetectionModel(DetectionModel):
    def __init__(self, cfg: OnnxModelConfig):
        self.cfg = cfg

        so = ort.SessionOptions()
        so.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        providers = build_providers(cfg.provider, cfg.device_id)

        self.session = ort.InferenceSession(cfg.path, sess_options=so, providers=providers)

        model_input = self.session.get_inputs()[0]
        self.input_name = model_input.name
        self.output_names = [o.name for o in self.session.get_outputs()]
        self.channels_first = self._is_channels_first(model_input.shape)
        self.dtype = np.float16 if "float16" in str(model_input.type) else np.float32
        self._input_shape = self._resolve_input_shape(model_input.shape)

        logging.info(
            f"Loaded ONNX model {cfg.path}: input={self.input_name} {self._input_shape}, "
            f"outputs={self.output_names}, providers={providers}"
        )

    @property
    def input_shape(self) -> List[int]:
        return list(self._input_shape)

    @staticmethod
    def _is_channels_first(shape: Sequence) -> bool:
        return len(shape) == 4 and shape[1] == 3 and shape[3] != 3

    def _resolve_input_shape(self, shape: Sequence) -> List[int]:
        if len(shape) != 4:
            raise ValueError(f"Expected a 4-D model input, got shape {list(shape)}")
        h, w = (shape[2], shape[3]) if self.channels_first else (shape[1], shape[2])
        fallback_w, fallback_h = self.cfg.input_size
        h = h if isinstance(h, int) and h > 0 else int(fallback_h)
        w = w if isinstance(w, int) and w > 0 else int(fallback_w)
        return [1, h, w, 3]

    def execute(self, tensor: np.ndarray) -> List[np.ndarray]:
        feed = tensor.astype(self.dtype, copy=False)
        if self.channels_first:
            feed = np.ascontiguousarray(np.transpose(feed, (0, 3, 1, 2)))
        return self.session.run(None, {self.input_name: feed})
