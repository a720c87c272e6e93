from typing import List, Literal, Optional

from fastapi import APIRouter, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.api.deps import CallerDep, SessionDep
from flowspace.models.comment import Comment
from flowspace.models.issue import Issue, IssueStatus
from flowspace.schemas.board import BoardSummary
from flowspace.schemas.comment import CommentCreate, CommentRead
from flowspace.schemas.issue import IssueCreate, IssueRead, IssueUpdate
from flowspace.schemas.token import SuccessResponse
from flowspace.schemas.user import UserSummary
from flowspace.services import comments as comments_service
from flowspace.services import issues as issues_service

router = APIRouter()


def _serialize_issue(issue: Issue, *, comment_count: int = 0, comments: Optional[List[Comment]] = None) -> IssueRead:
    comment_reads = [CommentRead.model_validate(comment) for comment in comments or []]
    return IssueRead(
        id=issue.id,
        title=issue.title,
        description=issue.description,
        status=issue.status,
        priority=issue.priority,
        assigned_to_id=issue.assigned_to_id,
        board_id=issue.board_id,
        created_by_id=issue.created_by_id,
        created_at=issue.created_at,
        updated_at=issue.updated_at,
        board=BoardSummary.model_validate(issue.board) if issue.board else None,
        assigned_to=UserSummary.model_validate(issue.assigned_to) if issue.assigned_to else None,
        created_by=UserSummary.model_validate(issue.created_by) if issue.created_by else None,
        comments=comment_reads,
        comment_count=max(comment_count, len(comment_reads)),
    )


async def _reload(session: AsyncSession, issue_id: int) -> IssueRead:
    issue = await issues_service.get_issue(session, issue_id, with_comments=True, populate_existing=True)
    return _serialize_issue(issue, comments=issue.comments)


@router.get("/", response_model=List[IssueRead])
async def list_issues(
    session: SessionDep,
    caller: CallerDep,
    board_id: Optional[int] = Query(default=None),
    status_filter: Optional[IssueStatus] = Query(default=None, alias="status"),
    filter: Optional[Literal["my"]] = Query(default=None),
) -> List[IssueRead]:
    issues = await issues_service.list_issues(
        session,
        caller,
        board_id=board_id,
        status=status_filter,
        assigned_to_me=filter == "my",
    )
    counts = await issues_service.count_comments(session, [issue.id for issue in issues])
    return [_serialize_issue(issue, comment_count=counts.get(issue.id, 0)) for issue in issues]


@router.post("/", response_model=IssueRead, status_code=status.HTTP_201_CREATED)
async def create_issue(issue_in: IssueCreate, session: SessionDep, caller: CallerDep) -> IssueRead:
    issue = await issues_service.create_issue(session, caller, data=issue_in.model_dump())
    await session.commit()
    return await _reload(session, issue.id)


@router.get("/{issue_id}", response_model=IssueRead)
async def read_issue(issue_id: int, session: SessionDep, caller: CallerDep) -> IssueRead:
    issue = await issues_service.get_visible_issue(session, caller, issue_id, with_comments=True)
    return _serialize_issue(issue, comments=issue.comments)


@router.put("/{issue_id}", response_model=IssueRead)
async def update_issue(
    issue_id: int,
    issue_in: IssueUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> IssueRead:
    issue = await issues_service.get_issue_for_change(session, caller, issue_id)
    await issues_service.update_issue(session, caller, issue, changes=issue_in.model_dump(exclude_unset=True))
    await session.commit()
    return await _reload(session, issue_id)


@router.delete("/{issue_id}", response_model=SuccessResponse)
async def delete_issue(issue_id: int, session: SessionDep, caller: CallerDep) -> SuccessResponse:
    issue = await issues_service.get_issue_for_change(session, caller, issue_id)
    await issues_service.delete_issue(session, caller, issue)
    await session.commit()
    return SuccessResponse()


@router.get("/{issue_id}/comments", response_model=List[CommentRead])
async def list_issue_comments(issue_id: int, session: SessionDep, caller: CallerDep) -> List[Comment]:
    issue = await issues_service.get_visible_issue(session, caller, issue_id)
    return await comments_service.list_comments(session, issue)


@router.post("/{issue_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def create_issue_comment(
    issue_id: int,
    comment_in: CommentCreate,
    session: SessionDep,
    caller: CallerDep,
) -> Comment:
    issue = await issues_service.get_visible_issue(session, caller, issue_id)
    comment = await comments_service.create_comment(session, caller, issue, content=comment_in.content)
    await session.commit()
    return await comments_service.get_comment(session, comment.id, populate_existing=True)
