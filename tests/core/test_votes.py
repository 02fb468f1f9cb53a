import pytest

from askmate.core.votes import VoteType, apply_vote, vote_score


def test_upvote_adds_user_to_upvotes() -> None:
    upvotes, downvotes = apply_vote([], [], 7, 'upvote')

    assert upvotes == [7]
    assert downvotes == []


def test_repeating_the_same_vote_is_idempotent() -> None:
    once = apply_vote([1], [2], 7, VoteType.DOWNVOTE)
    twice = apply_vote(*once, 7, VoteType.DOWNVOTE)

    assert once == twice
    assert twice == ([1], [2, 7])


def test_new_vote_replaces_previous_vote() -> None:
    upvotes, downvotes = apply_vote([], [], 7, 'upvote')
    upvotes, downvotes = apply_vote(upvotes, downvotes, 7, 'downvote')

    assert upvotes == []
    assert downvotes == [7]
    assert vote_score(upvotes, downvotes) == -1


def test_remove_clears_vote_from_both_sets() -> None:
    upvotes, downvotes = apply_vote([7, 8], [9], 7, 'remove')

    assert upvotes == [8]
    assert downvotes == [9]


@pytest.mark.parametrize(
    'sequence',
    [
        ['upvote', 'downvote', 'upvote'],
        ['downvote', 'remove', 'downvote', 'downvote'],
        ['upvote', 'upvote', 'remove', 'remove'],
    ],
)
def test_user_holds_at_most_one_vote(sequence: list[str]) -> None:
    upvotes: list[int] = [1, 2]
    downvotes: list[int] = [3]
    for vote_type in sequence:
        upvotes, downvotes = apply_vote(upvotes, downvotes, 5, vote_type)

    assert (5 in upvotes) + (5 in downvotes) <= 1
    assert upvotes.count(5) <= 1
    assert downvotes.count(5) <= 1


def test_apply_vote_does_not_mutate_inputs() -> None:
    upvotes = [1]
    downvotes = [2]

    apply_vote(upvotes, downvotes, 1, 'downvote')

    assert upvotes == [1]
    assert downvotes == [2]


def test_unknown_vote_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        apply_vote([], [], 1, 'sideways')
