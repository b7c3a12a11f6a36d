"""Services for model selection and streaming completions."""

from .llm_service import LLMService  # noqa: F401
from .model_probe import ModelProbe  # noqa: F401
from .stream_parser import EventKind, StreamEvent, decode_event_line  # noqa: F401
