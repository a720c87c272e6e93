from typing import List, Literal, Optional

from fastapi import APIRouter, Query, status

from flowspace.api.deps import CallerDep, SessionDep
from flowspace.models.task import Task, TaskStatus
from flowspace.schemas.task import TaskCreate, TaskRead, TaskStatusUpdate, TaskUpdate
from flowspace.schemas.token import SuccessResponse
from flowspace.services import tasks as tasks_service
from flowspace.services.visibility import DivisionScope

router = APIRouter()


@router.get("/", response_model=List[TaskRead])
async def list_tasks(
    session: SessionDep,
    caller: CallerDep,
    board_id: Optional[int] = Query(default=None),
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    filter: Optional[Literal["my"]] = Query(default=None),
    division_filter: Optional[str] = Query(default=None),
) -> List[Task]:
    division_scope = DivisionScope.parse(division_filter) if division_filter is not None else None
    return await tasks_service.list_tasks(
        session,
        caller,
        board_id=board_id,
        status=status_filter,
        assigned_to_me=filter == "my",
        division_scope=division_scope,
    )


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(task_in: TaskCreate, session: SessionDep, caller: CallerDep) -> Task:
    task = await tasks_service.create_task(session, caller, data=task_in.model_dump())
    await session.commit()
    return await tasks_service.get_task(session, task.id, populate_existing=True)


@router.get("/{task_id}", response_model=TaskRead)
async def read_task(task_id: int, session: SessionDep, caller: CallerDep) -> Task:
    return await tasks_service.get_visible_task(session, caller, task_id)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> Task:
    task = await tasks_service.get_task_for_change(session, caller, task_id)
    await tasks_service.update_task(session, caller, task, changes=task_in.model_dump(exclude_unset=True))
    await session.commit()
    return await tasks_service.get_task(session, task_id, populate_existing=True)


@router.patch("/{task_id}/status", response_model=TaskRead)
async def update_task_status(
    task_id: int,
    status_in: TaskStatusUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> Task:
    task = await tasks_service.get_task_for_change(session, caller, task_id)
    await tasks_service.set_status(session, caller, task, status_in.status)
    await session.commit()
    return await tasks_service.get_task(session, task_id, populate_existing=True)


@router.delete("/{task_id}", response_model=SuccessResponse)
async def delete_task(task_id: int, session: SessionDep, caller: CallerDep) -> SuccessResponse:
    task = await tasks_service.get_task_for_change(session, caller, task_id)
    await tasks_service.delete_task(session, caller, task)
    await session.commit()
    return SuccessResponse()
