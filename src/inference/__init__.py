"""
Model backends and tensor lifetime management.
"""

from .backend import DetectionModel, model_input_size, split_outputs
from .scope import TensorScope

__all__ = [
    "DetectionModel",
    "model_input_size",
    "split_outputs",
    "TensorScope",
]
