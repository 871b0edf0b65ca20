"""Tests for workspace identity and routing."""

import pytest

from chat_hitl.workspace import normalize_workspace, same_or_containing, should_claim


class TestShouldClaim:
    def test_request_in_subdirectory_of_open_workspace(self):
        assert should_claim("/a/b", ["/a"]) is True

    def test_request_for_ancestor_of_open_workspace(self):
        assert should_claim("/a", ["/a/b"]) is True

    def test_unrelated_workspace(self):
        assert should_claim("/x", ["/a"]) is False

    def test_request_without_workspace_is_claimed(self):
        assert should_claim("", ["/a"]) is True
        assert should_claim("", ["/a", "c:/work"]) is True

    def test_no_open_workspace_claims_everything(self):
        assert should_claim("/a", []) is True

    def test_any_of_several_workspaces(self):
        assert should_claim("/b/src", ["/a", "/b"]) is True

    def test_sibling_with_common_prefix_is_not_contained(self):
        assert should_claim("/a/bc", ["/a/b"]) is False


class TestSameOrContaining:
    def test_case_and_separators_are_ignored(self):
        assert same_or_containing("C:\\Users\\Dev\\Proj", "c:/users/dev/proj")

    def test_trailing_slash_is_ignored(self):
        assert same_or_containing("/proj/", "/proj")

    def test_windows_child_path(self):
        assert same_or_containing("C:\\Proj\\src", "c:/proj")

    def test_empty_workspace_matches_any_workspace(self):
        assert same_or_containing("", "")
        assert same_or_containing("", "/proj")
        assert same_or_containing("C:\\Proj", "")

    def test_root_contains_everything(self):
        assert same_or_containing("/", "/anything/at/all")


@pytest.mark.parametrize("raw, expected", [
    ("/Users/Dev/Proj/", "/users/dev/proj"),
    ("C:\\Work\\App", "c:/work/app"),
    ("/", "/"),
    ("", ""),
])
def test_normalize_workspace(raw, expected):
    assert normalize_workspace(raw) == expected
