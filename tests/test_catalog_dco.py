"""Tests for the dco-check operation."""

import pytest
from fakes import NOW, REPO, FakeGitHubClient, make_pr, pr_item

from sweeper.models import Comment, Commit, Item
from sweeper.operations import Context, FilterResult, OperationHooks, get_descriptor
from sweeper.operations.catalog.dco_check import (
    DCO_COMMENT_TOKEN,
    DcoCheckOperation,
    DcoStatus,
    format_dco_comment,
)

SIGNED = "Fix build\n\nSigned-off-by: Jane Doe <jane@example.com>"
UNSIGNED = "Fix build"


@pytest.fixture
def client() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def ctx(client: FakeGitHubClient) -> Context:
    return Context(client, "owner", "repo")


def test_signed_and_unsigned_detection(ctx: Context, client: FakeGitHubClient) -> None:
    op = DcoCheckOperation()
    client.commits[2] = [Commit("a", SIGNED), Commit("b", SIGNED)]
    client.commits[3] = [Commit("a", SIGNED), Commit("b", UNSIGNED)]
    assert op.filter(ctx, pr_item(2)) == (FilterResult.ACCEPT, DcoStatus(signed=True))
    assert op.filter(ctx, pr_item(3)) == (FilterResult.ACCEPT, DcoStatus(signed=False))


def test_unsigned_adds_label_and_single_comment(ctx: Context, client: FakeGitHubClient) -> None:
    """The explanation is posted once, however many times the check runs."""
    op = DcoCheckOperation(unsigned_label="dco/missing")
    item = Item.from_pull_request(make_pr(5, commits=1))
    op.apply(ctx, item, DcoStatus(signed=False))
    op.apply(ctx, item, DcoStatus(signed=False))
    writes = client.writes()
    assert writes[0] == ("add_labels", REPO, 5, ["dco/missing"])
    comments = [w for w in writes if w[0] == "create_comment"]
    assert len(comments) == 1
    assert DCO_COMMENT_TOKEN in comments[0][3]


def test_signed_removes_label_and_explanations(ctx: Context, client: FakeGitHubClient) -> None:
    """A missing label is not an error; every explanation comment is deleted."""
    client.labels_missing.add("dco/no")
    client.comments[6] = [
        Comment(1, f"<!-- {DCO_COMMENT_TOKEN} -->\nplease sign", "bot", NOW),
        Comment(2, "thanks!", "octocat", NOW),
        Comment(3, f"<!-- {DCO_COMMENT_TOKEN} -->\nplease sign", "bot", NOW),
    ]
    DcoCheckOperation().apply(ctx, pr_item(6), DcoStatus(signed=True))
    assert ("remove_label", REPO, 6, "dco/no") in client.writes()
    deleted = sorted(w[2] for w in client.writes() if w[0] == "delete_comment")
    assert deleted == [1, 3]


def test_format_dco_comment_multiple_commits() -> None:
    single = format_dco_comment(make_pr(1, commits=1, head_ref="fix", head_clone_url="https://x/y.git"))
    multiple = format_dco_comment(make_pr(1, commits=3))
    assert 'git clone -b "fix" https://x/y.git somewhere' in single
    assert "rebase -i" not in single
    assert "git rebase -i HEAD~3" in multiple


def test_dco_descriptor_settings_alias() -> None:
    op = get_descriptor("dco-check").from_config({"unsigned-label": "dco/none"}, OperationHooks())
    assert op.unsigned_label == "dco/none"
