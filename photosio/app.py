from fastapi import FastAPI

from . import api, errors


def create_app() -> FastAPI:
    app = FastAPI(
        title="PhotosIO",
        version="0.1.0",
    )
    app.include_router(api.router)
    errors.register_handlers(app)
    return app
