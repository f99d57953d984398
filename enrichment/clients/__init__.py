"""
Transports wrapped by the rate-limited caller.

    GenerationClient: OpenAI-compatible chat completions (text in, text out)
    VideoExistenceClient: YouTube oEmbed lookup (url in, bool out)
"""

from enrichment.clients.generation import GenerationClient
from enrichment.clients.video import VideoExistenceClient

__all__ = ["GenerationClient", "VideoExistenceClient"]
