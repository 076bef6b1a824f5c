"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn + uvicorn workers) importe `techtrain.asgi:app`.
- Toute la configuration (routes, middlewares, sécurité, services) est centralisée dans
  techtrain.app_setup.factory; ce fichier ne fait qu'exposer l'instance `app`.
"""
from techtrain.app_setup.factory import create_app

app = create_app()
