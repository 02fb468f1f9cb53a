"""Up/down vote bookkeeping shared by questions and answers.

Each votable record keeps two lists of user ids. A user holds at most one
vote: casting a vote first clears whatever the user had before, so repeating
the same vote is a no-op and a new vote replaces the old one.
"""

from __future__ import annotations

from enum import Enum


class VoteType(str, Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"
    REMOVE = "remove"


def apply_vote(
    upvotes: list[int],
    downvotes: list[int],
    user_id: int,
    vote_type: VoteType | str,
) -> tuple[list[int], list[int]]:
    """Return new ``(upvotes, downvotes)`` lists with ``user_id``'s vote applied.

    The inputs are not modified. Raises ``ValueError`` for an unknown vote type.
    """
    vote_type = VoteType(vote_type)

    new_upvotes = [voter for voter in upvotes if voter != user_id]
    new_downvotes = [voter for voter in downvotes if voter != user_id]

    if vote_type is VoteType.UPVOTE:
        new_upvotes.append(user_id)
    elif vote_type is VoteType.DOWNVOTE:
        new_downvotes.append(user_id)

    return new_upvotes, new_downvotes


def vote_score(upvotes: list[int], downvotes: list[int]) -> int:
    return len(upvotes) - len(downvotes)
