from typing import Callable, List

from core.logger import app_logger
from services.comment_service import CommentService, validate_rating


def build_comment_tree(rows: List[dict]) -> List[dict]:
    """
    Turn a flat list of comment rows into root comments, each carrying its
    direct replies in ``replies``.

    Row order is kept as given. A reply whose parent is missing from ``rows``
    is dropped, as is any reply whose parent is itself a reply, so the tree
    never goes deeper than two levels. Input rows are not modified.
    """
    nodes = {}
    for row in rows:
        nodes[row["id"]] = {**row, "replies": []}

    roots = []
    for row in rows:
        node = nodes[row["id"]]
        parent_id = row.get("parent_id")
        if parent_id is None:
            roots.append(node)
            continue

        parent = nodes.get(parent_id)
        if parent is None or parent.get("parent_id") is not None:
            continue
        parent["replies"].append(node)

    return roots


class CommentThread:
    """
    Comments of one product as seen by one caller. Every mutation goes to
    the gateway and is followed by a full reload; nothing is patched locally.
    """

    def __init__(self, gateway: CommentService, product_id: int, user_id: int | None = None,
                 allow_rating: bool = True):
        self.gateway = gateway
        self.product_id = product_id
        self.user_id = user_id
        self.allow_rating = allow_rating
        self.comments: List[dict] = []
        self.loading = False
        self.submitting = False

    async def load(self):
        self.loading = True
        try:
            rows = await self.gateway.list_comments(self.product_id, viewer_id=self.user_id)
            self.comments = build_comment_tree(rows)
        except Exception as e:
            app_logger.error(f"Error loading comments for product {self.product_id}: {e}")
        finally:
            self.loading = False
        return self.comments

    def find(self, comment_id: int):
        for root in self.comments:
            if root["id"] == comment_id:
                return root
            for reply in root["replies"]:
                if reply["id"] == comment_id:
                    return reply
        return None

    async def submit_root(self, body: str, rating: int = None) -> bool:
        if self.user_id is None or not body or not body.strip():
            return False
        try:
            rating = validate_rating(rating) if self.allow_rating else None
        except ValueError as e:
            app_logger.warning(f"Rejected comment: {e}")
            return False

        return await self._mutate(
            "submitting comment",
            self.gateway.create_comment(
                product_id=self.product_id,
                user_id=self.user_id,
                content=body.strip(),
                rating=rating
            )
        )

    async def submit_reply(self, parent_id: int, body: str) -> bool:
        if self.user_id is None or not body or not body.strip():
            return False

        return await self._mutate(
            "submitting reply",
            self.gateway.create_comment(
                product_id=self.product_id,
                user_id=self.user_id,
                content=body.strip(),
                parent_id=parent_id
            )
        )

    async def edit(self, comment_id: int, body: str) -> bool:
        if not body or not body.strip() or not self._is_author(comment_id):
            return False

        return await self._mutate(
            "updating comment",
            self.gateway.update_comment(comment_id, self.user_id, body.strip())
        )

    async def delete(self, comment_id: int, confirm: Callable[[], bool]) -> bool:
        if not self._is_author(comment_id) or not confirm():
            return False

        return await self._mutate(
            "deleting comment",
            self.gateway.delete_comment(comment_id, self.user_id)
        )

    async def vote(self, comment_id: int, kind: str) -> bool:
        if self.user_id is None:
            return False

        return await self._mutate(
            "voting on comment",
            self.gateway.vote(comment_id, self.user_id, kind)
        )

    def _is_author(self, comment_id: int) -> bool:
        # UI convenience only; the gateway checks authorship again
        comment = self.find(comment_id)
        return comment is not None and self.user_id is not None and comment["user_id"] == self.user_id

    async def _mutate(self, action: str, call) -> bool:
        self.submitting = True
        try:
            await call
        except Exception as e:
            app_logger.error(f"Error {action}: {e}")
            return False
        finally:
            self.submitting = False

        await self.load()
        return True
