"""
Web application package for the Gemini move relay.

Provides the FastAPI app that browsers call instead of Gemini directly, so
the API key never leaves the server. Run standalone with `python -m web`,
or point any ASGI host at `web.app:app`.
"""
