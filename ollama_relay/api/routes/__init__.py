"""API route handlers for ollama-relay.

Routes:
- health: GET /, HEAD /
- models: GET /api/tags, POST /api/show
- chat: POST /api/chat
"""

__all__: list[str] = []
