from fastapi import APIRouter

from hostpanel.api.v1.endpoints import auth, domains, files, monitor, users

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(domains.router, prefix="/domains", tags=["domains"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(monitor.router, prefix="/monitor", tags=["monitor"])
