import pytest
from tortoise.exceptions import DoesNotExist

from models.comment import Comment, CommentStatus, CommentVote
from services.comment_service import CommentService

PRODUCT_ID = 42


@pytest.fixture
def service():
    return CommentService()


async def test_create_root_comment_with_rating(service, customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "  Great headphones  ", rating=5)

    assert comment["content"] == "Great headphones"
    assert comment["rating"] == 5
    assert comment["parent_id"] is None
    assert comment["status"] == "published"
    assert comment["user"]["full_name"] == "Alice Martin"


async def test_zero_rating_means_no_rating(service, customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "No stars", rating=0)

    assert comment["rating"] is None


@pytest.mark.parametrize("rating", [6, -1, "5"])
async def test_out_of_range_rating_is_rejected(service, customer, rating):
    with pytest.raises(ValueError):
        await service.create_comment(PRODUCT_ID, customer.id, "Hmm", rating=rating)

    assert await Comment.all().count() == 0


async def test_blank_content_is_rejected(service, customer):
    with pytest.raises(ValueError):
        await service.create_comment(PRODUCT_ID, customer.id, "   ")


async def test_replies_cannot_be_nested(service, customer, other_customer):
    root = await service.create_comment(PRODUCT_ID, customer.id, "Root")
    reply = await service.create_comment(PRODUCT_ID, other_customer.id, "Reply", parent_id=root["id"])

    assert reply["parent_id"] == root["id"]
    with pytest.raises(ValueError):
        await service.create_comment(PRODUCT_ID, customer.id, "Too deep", parent_id=reply["id"])


async def test_reply_must_target_same_product(service, customer):
    root = await service.create_comment(PRODUCT_ID, customer.id, "Root")

    with pytest.raises(ValueError):
        await service.create_comment(PRODUCT_ID + 1, customer.id, "Elsewhere", parent_id=root["id"])


async def test_reply_to_missing_parent(service, customer):
    with pytest.raises(DoesNotExist):
        await service.create_comment(PRODUCT_ID, customer.id, "Lost", parent_id=999)


async def test_list_returns_published_newest_first(service, customer):
    first = await service.create_comment(PRODUCT_ID, customer.id, "first")
    second = await service.create_comment(PRODUCT_ID, customer.id, "second")
    hidden = await service.create_comment(PRODUCT_ID, customer.id, "hidden")
    await Comment.filter(id=hidden["id"]).update(status=CommentStatus.HIDDEN)
    await service.create_comment(PRODUCT_ID + 1, customer.id, "other product")

    rows = await service.list_comments(PRODUCT_ID)

    assert [r["id"] for r in rows] == [second["id"], first["id"]]


async def test_only_author_may_edit(service, customer, other_customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "Original")

    with pytest.raises(PermissionError):
        await service.update_comment(comment["id"], other_customer.id, "Hijacked")

    updated = await service.update_comment(comment["id"], customer.id, "Edited")
    assert updated["content"] == "Edited"


async def test_only_author_may_delete(service, customer, other_customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "Bye")

    with pytest.raises(PermissionError):
        await service.delete_comment(comment["id"], other_customer.id)

    assert await service.delete_comment(comment["id"], customer.id)
    assert not await Comment.exists(id=comment["id"])


async def test_vote_upsert_overwrites(service, customer, other_customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "Vote on me")

    voted = await service.vote(comment["id"], other_customer.id, "upvote")
    assert (voted["upvotes"], voted["downvotes"]) == (1, 0)

    switched = await service.vote(comment["id"], other_customer.id, "downvote")
    assert (switched["upvotes"], switched["downvotes"]) == (0, 1)
    assert switched["user_vote"] == "downvote"
    assert await CommentVote.filter(comment_id=comment["id"], user_id=other_customer.id).count() == 1


async def test_votes_from_different_users_add_up(service, customer, other_customer, staff):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "Popular")

    await service.vote(comment["id"], other_customer.id, "upvote")
    result = await service.vote(comment["id"], staff.id, "upvote")

    assert result["upvotes"] == 2


async def test_list_reports_the_viewers_vote(service, customer, other_customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "Vote on me")
    await service.vote(comment["id"], other_customer.id, "upvote")

    seen_by_voter = await service.list_comments(PRODUCT_ID, viewer_id=other_customer.id)
    seen_by_author = await service.list_comments(PRODUCT_ID, viewer_id=customer.id)

    assert seen_by_voter[0]["user_vote"] == "upvote"
    assert seen_by_author[0]["user_vote"] is None


async def test_unknown_vote_kind_is_rejected(service, customer):
    comment = await service.create_comment(PRODUCT_ID, customer.id, "Vote on me")

    with pytest.raises(ValueError):
        await service.vote(comment["id"], customer.id, "meh")
