"""Text-generation client."""

from .client import ChatClient, parse_json_response

__all__ = ["ChatClient", "parse_json_response"]
