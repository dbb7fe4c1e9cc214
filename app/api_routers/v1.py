from fastapi import APIRouter

from app.features.crawl.routes.check import router as check_router
from app.features.crawl.routes.websocket import router as progress_ws_router
from app.features.spaces.routes.spaces import router as spaces_router

api_router = APIRouter()

# Register crawl feature routes
api_router.include_router(check_router)
api_router.include_router(progress_ws_router)

# Register spaces feature routes
api_router.include_router(spaces_router)
