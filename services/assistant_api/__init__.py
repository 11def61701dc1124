"""Assistant Backend - HTTP API service.

FastAPI service exposing the audio job lifecycle, the chat history log and
the administrative reset.
"""

__all__: list[str] = []
