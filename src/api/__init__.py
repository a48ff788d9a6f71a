# src/api/__init__.py
# =====================
# API Layer — Voicemail Pipeline
#
# Responsibility:
#   - Expose the pipeline and the translation service over HTTP (FastAPI)
#   - Forward processed voicemails to a configured webhook (aiohttp)
#
# Public API:
#   create_app(pipeline=None, settings=None) -> FastAPI
