from fastapi import APIRouter

from ..access import router as access
from ..health import router as health
from ..logs import router as logs
from ..users import router as users

router = APIRouter()

_routers = [
    access.router,
    users.router,
    logs.router,
    health.router,
]

for _router in _routers:
    router.include_router(_router)
