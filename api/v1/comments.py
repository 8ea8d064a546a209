from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_optional_user
from models.user import User
from schemas.comment import CreateCommentRequest, UpdateCommentRequest, VoteRequest
from services.comment_service import CommentService
from services.comment_thread import build_comment_tree

router = APIRouter(prefix="/api/v1", tags=["Comments"])


@router.get("/products/{product_id}/comments")
async def list_comments(
        product_id: int,
        service: CommentService = Depends(),
        current_user: User | None = Depends(get_optional_user)
):
    """Root comments newest first, each with its direct replies."""
    rows = await service.list_comments(product_id, viewer_id=current_user.id if current_user else None)
    tree = build_comment_tree(rows)
    return {"comments": tree, "count": sum(1 + len(node["replies"]) for node in tree)}


@router.post("/products/{product_id}/comments")
async def create_comment(
        product_id: int,
        payload: CreateCommentRequest,
        service: CommentService = Depends(),
        current_user: User = Depends(get_current_user)
):
    comment = await service.create_comment(
        product_id=product_id,
        user_id=current_user.id,
        content=payload.content,
        rating=payload.rating,
        parent_id=payload.parent_id
    )
    return {"comment": comment}


@router.put("/comments/{comment_id}")
async def update_comment(
        comment_id: int,
        payload: UpdateCommentRequest,
        service: CommentService = Depends(),
        current_user: User = Depends(get_current_user)
):
    comment = await service.update_comment(comment_id, current_user.id, payload.content)
    return {"comment": comment}


@router.delete("/comments/{comment_id}")
async def delete_comment(
        comment_id: int,
        service: CommentService = Depends(),
        current_user: User = Depends(get_current_user)
):
    await service.delete_comment(comment_id, current_user.id)
    return {"message": "Comment deleted"}


@router.post("/comments/{comment_id}/vote")
async def vote_comment(
        comment_id: int,
        payload: VoteRequest,
        service: CommentService = Depends(),
        current_user: User = Depends(get_current_user)
):
    comment = await service.vote(comment_id, current_user.id, payload.vote_type.value)
    return {"comment": comment}
