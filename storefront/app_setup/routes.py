"""
Routes simples (hors routers).
- /favicon.ico: pas de contenu (204) pour éviter des 404 dans les logs.
- /index.html: alias de l'accueil.
"""
from fastapi import FastAPI
from fastapi.responses import RedirectResponse, Response
from starlette.status import HTTP_204_NO_CONTENT, HTTP_303_SEE_OTHER

def register_routes(app: FastAPI) -> None:
    @app.get("/index.html", include_in_schema=False)
    def index_alias():
        return RedirectResponse(url="/", status_code=HTTP_303_SEE_OTHER)

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=HTTP_204_NO_CONTENT)
