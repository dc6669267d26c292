"""External generator access: provider client and deadline wrapper."""

from .bounded import Generator, invoke_bounded
from .gemini import GeminiGenerator

__all__ = ["Generator", "invoke_bounded", "GeminiGenerator"]
