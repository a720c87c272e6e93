from fastapi import APIRouter

from flowspace.api.v1.endpoints import (
    auth,
    boards,
    calendars,
    comments,
    divisions,
    events,
    invitations,
    issues,
    tasks,
    users,
    version,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(divisions.router, prefix="/divisions", tags=["divisions"])
api_router.include_router(boards.router, prefix="/boards", tags=["boards"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(issues.router, prefix="/issues", tags=["issues"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(calendars.router, prefix="/calendars", tags=["calendars"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(invitations.router, prefix="/invitations", tags=["invitations"])
api_router.include_router(version.router, tags=["version"])
