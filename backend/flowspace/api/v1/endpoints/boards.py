from typing import List, Optional

from fastapi import APIRouter, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.api.deps import CallerDep, SessionDep
from flowspace.models.board import Board
from flowspace.models.scope import VisibilityType
from flowspace.models.user import User
from flowspace.schemas.board import BoardAccessRead, BoardCreate, BoardRead, BoardUpdate
from flowspace.schemas.division import DivisionSummary
from flowspace.schemas.token import SuccessResponse
from flowspace.schemas.user import UserRead, UserSummary
from flowspace.services import boards as boards_service
from flowspace.services.visibility import DivisionScope

router = APIRouter()


def _serialize_board(board: Board, counts: tuple[int, int] = (0, 0)) -> BoardRead:
    return BoardRead(
        id=board.id,
        name=board.name,
        description=board.description,
        type=board.type,
        division_id=board.division_id,
        created_by_id=board.created_by_id,
        created_at=board.created_at,
        updated_at=board.updated_at,
        division=DivisionSummary.model_validate(board.division) if board.division else None,
        access=[
            BoardAccessRead(
                user_id=row.user_id,
                can_edit=row.can_edit,
                user=UserSummary.model_validate(row.user) if row.user else None,
            )
            for row in board.access
        ],
        task_count=counts[0],
        issue_count=counts[1],
    )


async def _reload(session: AsyncSession, board_id: int) -> BoardRead:
    board = await boards_service.get_board(session, board_id, populate_existing=True)
    counts = await boards_service.count_contents(session, [board_id])
    return _serialize_board(board, counts.get(board_id, (0, 0)))


@router.get("/", response_model=List[BoardRead])
async def list_boards(
    session: SessionDep,
    caller: CallerDep,
    board_type: Optional[VisibilityType] = Query(default=None, alias="type"),
) -> List[BoardRead]:
    boards = await boards_service.list_boards(session, caller, board_type=board_type)
    counts = await boards_service.count_contents(session, [board.id for board in boards])
    return [_serialize_board(board, counts.get(board.id, (0, 0))) for board in boards]


@router.get("/members", response_model=List[UserRead])
async def list_board_members(
    session: SessionDep,
    _caller: CallerDep,
    division_id: str = Query(default="general"),
) -> List[User]:
    scope = DivisionScope.parse(division_id)
    return await boards_service.list_members(session, scope)


@router.post("/", response_model=BoardRead, status_code=status.HTTP_201_CREATED)
async def create_board(board_in: BoardCreate, session: SessionDep, caller: CallerDep) -> BoardRead:
    board = await boards_service.create_board(
        session,
        caller,
        name=board_in.name,
        description=board_in.description,
        board_type=board_in.type,
        division_id=board_in.division_id,
        user_ids=board_in.user_ids,
    )
    await session.commit()
    return await _reload(session, board.id)


@router.get("/{board_id}", response_model=BoardRead)
async def read_board(board_id: int, session: SessionDep, caller: CallerDep) -> BoardRead:
    board = await boards_service.get_visible_board(session, caller, board_id)
    counts = await boards_service.count_contents(session, [board.id])
    return _serialize_board(board, counts.get(board.id, (0, 0)))


@router.put("/{board_id}", response_model=BoardRead)
async def update_board(
    board_id: int,
    board_in: BoardUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> BoardRead:
    board = await boards_service.get_board_for_change(session, caller, board_id)
    await boards_service.update_board(
        session,
        caller,
        board,
        changes=board_in.model_dump(exclude_unset=True),
    )
    await session.commit()
    return await _reload(session, board_id)


@router.delete("/{board_id}", response_model=SuccessResponse)
async def delete_board(board_id: int, session: SessionDep, caller: CallerDep) -> SuccessResponse:
    board = await boards_service.get_board_for_change(session, caller, board_id)
    await boards_service.delete_board(session, caller, board)
    await session.commit()
    return SuccessResponse()
