"""
Name: ASGI Entrypoint (darksphere.main)

Responsibilities:
  - Re-export the ASGI app for uvicorn/gunicorn and tooling
  - Keep this module side-effect free beyond importing darksphere.api.main

Notes/Constraints:
  - uvicorn darksphere.main:app
  - Changing this path is a deployment-breaking change for infra scripts
"""

from darksphere.api.main import app

__all__ = ["app"]
