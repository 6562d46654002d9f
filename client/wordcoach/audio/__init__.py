from .backend import AudioBackend, InputStream, SoundDeviceBackend
from .recorder import CaptureController, encode_clip
from .types import AudioClip, CaptureState

__all__ = [
    "AudioBackend",
    "AudioClip",
    "CaptureController",
    "CaptureState",
    "InputStream",
    "SoundDeviceBackend",
    "encode_clip",
]
