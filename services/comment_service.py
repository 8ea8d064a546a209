from tortoise import timezone

from core.logger import db_logger
from models.comment import Comment, CommentStatus, CommentVote, VoteType
from services.chat_service import enum_value, serialize_profile


def validate_rating(rating):
    # 0 is what an untouched star widget sends
    if rating in (None, 0):
        return None
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")
    return rating


class CommentService:
    """Gateway operations for product comments and their votes."""

    async def list_comments(self, product_id: int, viewer_id: int | None = None):
        """Published comments of a product as a flat list, newest first."""
        db_logger.logger.debug(f"Fetching comments for product {product_id}")

        comments = await Comment.filter(
            product_id=product_id,
            status=CommentStatus.PUBLISHED
        ).order_by("-created_at", "-id").prefetch_related("user")

        votes = {}
        if viewer_id is not None and comments:
            rows = await CommentVote.filter(
                user_id=viewer_id,
                comment_id__in=[c.id for c in comments]
            ).values_list("comment_id", "vote_type")
            votes = {comment_id: enum_value(vote_type) for comment_id, vote_type in rows}

        db_logger.logger.info(f"✅ Retrieved {len(comments)} comments for product {product_id}")
        return [self.serialize_comment(c, votes.get(c.id)) for c in comments]

    async def create_comment(
            self,
            product_id: int,
            user_id: int,
            content: str,
            rating: int = None,
            parent_id: int = None
    ):
        if not content or not content.strip():
            raise ValueError("Comment content is required")

        if parent_id is not None:
            parent = await Comment.get(id=parent_id)
            if parent.product_id != product_id:
                raise ValueError("Reply must belong to the same product as its parent")
            if parent.parent_id is not None:
                raise ValueError("Replies cannot be nested")
            if rating:
                raise ValueError("Replies cannot carry a rating")
        else:
            rating = validate_rating(rating)

        try:
            comment = await Comment.create(
                product_id=product_id,
                user_id=user_id,
                parent_id=parent_id,
                content=content.strip(),
                rating=rating,
                status=CommentStatus.PUBLISHED
            )
        except Exception as e:
            db_logger.log_error("create_comment", e)
            raise

        db_logger.log_create("Comment", {
            "id": comment.id,
            "product_id": product_id,
            "user_id": user_id,
            "parent_id": parent_id,
            "rating": rating
        })

        await comment.fetch_related("user")
        return self.serialize_comment(comment)

    async def update_comment(self, comment_id: int, user_id: int, content: str):
        if not content or not content.strip():
            raise ValueError("Comment content is required")

        comment = await Comment.get(id=comment_id)
        if comment.user_id != user_id:
            raise PermissionError("Only the author can edit this comment")

        comment.content = content.strip()
        comment.updated_at = timezone.now()
        await comment.save(update_fields=["content", "updated_at"])

        db_logger.log_update("Comment", comment_id, {"content": comment.content})

        await comment.fetch_related("user")
        return self.serialize_comment(comment)

    async def delete_comment(self, comment_id: int, user_id: int):
        comment = await Comment.get(id=comment_id)
        if comment.user_id != user_id:
            raise PermissionError("Only the author can delete this comment")

        await comment.delete()
        db_logger.log_delete("Comment", comment_id)
        return True

    async def vote(self, comment_id: int, user_id: int, vote_type: str):
        """
        One vote row per (comment, user). A second call with another kind
        overwrites the first; the counters are recounted from the vote rows.
        """
        vote_type = VoteType(enum_value(vote_type))
        comment = await Comment.get(id=comment_id)

        try:
            _, created = await CommentVote.update_or_create(
                defaults={"vote_type": vote_type},
                comment_id=comment_id,
                user_id=user_id
            )

            comment.upvotes = await CommentVote.filter(
                comment_id=comment_id, vote_type=VoteType.UPVOTE
            ).count()
            comment.downvotes = await CommentVote.filter(
                comment_id=comment_id, vote_type=VoteType.DOWNVOTE
            ).count()
            await comment.save(update_fields=["upvotes", "downvotes"])

        except Exception as e:
            db_logger.log_error("vote", e)
            raise

        db_logger.logger.info(
            f"{'New' if created else 'Changed'} {vote_type.value} on comment {comment_id} by user {user_id}"
        )

        await comment.fetch_related("user")
        return self.serialize_comment(comment, vote_type.value)

    def serialize_comment(self, comment: Comment, user_vote: str = None):
        return {
            "id": comment.id,
            "product_id": comment.product_id,
            "user_id": comment.user_id,
            "parent_id": comment.parent_id,
            "content": comment.content,
            "rating": comment.rating,
            "status": enum_value(comment.status),
            "upvotes": comment.upvotes,
            "downvotes": comment.downvotes,
            "created_at": comment.created_at.isoformat(),
            "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
            "user": serialize_profile(comment.user),
            "user_vote": user_vote,
        }
