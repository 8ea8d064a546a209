from enum import Enum

from tortoise import fields, models


class CommentStatus(str, Enum):
    PUBLISHED = "published"
    PENDING = "pending"
    HIDDEN = "hidden"
    DELETED = "deleted"


class VoteType(str, Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class Comment(models.Model):
    id = fields.IntField(pk=True)
    product_id = fields.IntField(index=True)

    user = fields.ForeignKeyField(
        "models.User",
        related_name="comments",
        on_delete=fields.CASCADE
    )
    # null means a root comment; replies are never nested further
    parent = fields.ForeignKeyField(
        "models.Comment",
        related_name="replies",
        null=True,
        on_delete=fields.CASCADE
    )

    content = fields.TextField()
    rating = fields.SmallIntField(null=True)  # 1-5, roots only
    status = fields.CharEnumField(CommentStatus, max_length=20, default=CommentStatus.PUBLISHED)

    upvotes = fields.IntField(default=0)
    downvotes = fields.IntField(default=0)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    votes: fields.ReverseRelation["CommentVote"]

    class Meta:
        table = "comments"
        ordering = ["-created_at"]


class CommentVote(models.Model):
    id = fields.IntField(pk=True)
    comment = fields.ForeignKeyField(
        "models.Comment",
        related_name="votes",
        on_delete=fields.CASCADE
    )
    user = fields.ForeignKeyField(
        "models.User",
        related_name="comment_votes",
        on_delete=fields.CASCADE
    )
    vote_type = fields.CharEnumField(VoteType, max_length=10)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "comment_votes"
        unique_together = (("comment", "user"),)
