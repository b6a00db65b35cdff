from fastapi import APIRouter
from .auth import router as auth_router
from .content import router as content_router
from .files import router as files_router
from .admin import router as admin_router

router = APIRouter()
router.include_router(content_router, tags=['content'])
router.include_router(auth_router, tags=['auth'])
router.include_router(files_router, tags=['files'])
router.include_router(admin_router, tags=['admin'])
