from fastapi import FastAPI

from stockorders.app.api.exception_handlers import register_exception_handlers
from stockorders.app.api.v1.router import router as v1_router

app = FastAPI(title="Stock Orders", version="0.1.0")
register_exception_handlers(app)
app.include_router(v1_router, prefix="/v1")
