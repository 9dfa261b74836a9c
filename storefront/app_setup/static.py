"""
Montage des fichiers statiques.
- /public -> tout le répertoire public (css, js, img)
- /js -> alias direct vers les scripts
"""
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from storefront.config import PUBLIC_DIR

def mount_static_files(app: FastAPI) -> None:
    app.mount("/public", StaticFiles(directory=str(PUBLIC_DIR)), name="public")
    app.mount("/js", StaticFiles(directory=str(PUBLIC_DIR / "js")), name="js")
