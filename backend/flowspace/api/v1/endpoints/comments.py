from fastapi import APIRouter

from flowspace.api.deps import CallerDep, SessionDep
from flowspace.schemas.token import SuccessResponse
from flowspace.services import comments as comments_service

router = APIRouter()


@router.delete("/{comment_id}", response_model=SuccessResponse)
async def delete_comment(comment_id: int, session: SessionDep, caller: CallerDep) -> SuccessResponse:
    await comments_service.delete_comment(session, caller, comment_id)
    await session.commit()
    return SuccessResponse()
