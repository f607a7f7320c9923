"""Tests for the output formatters."""

from bitbucket_mcp.connectors.formatters import (
    MergeInfo,
    format_cloud_comment,
    format_cloud_file_change,
    format_cloud_pull_request,
    format_server_comment,
    format_server_file_change,
    format_server_pull_request,
    format_suggestion_comment,
    format_timestamp,
    summarize_comments,
)


SERVER_PR = {
    "id": 42,
    "title": "Add retries",
    "description": "",
    "state": "MERGED",
    "open": False,
    "closed": True,
    "locked": False,
    "author": {"user": {"displayName": "Jane Doe", "name": "jdoe", "emailAddress": "jane@example.com"}},
    "fromRef": {"displayId": "feature/retries", "latestCommit": "aaa111"},
    "toRef": {
        "displayId": "main",
        "latestCommit": "bbb222",
        "repository": {"slug": "api", "project": {"key": "PROJ"}},
    },
    "reviewers": [{"user": {"displayName": "Rev One"}, "approved": True, "status": "APPROVED"}],
    "participants": [],
    "createdDate": 1700000000000,
    "updatedDate": 1700003600000,
    "links": {"self": [{"href": "https://bb.internal/projects/PROJ/repos/api/pull-requests/42"}]},
    "properties": {"mergeCommit": {"id": "ccc333"}},
}

CLOUD_PR = {
    "id": 7,
    "title": "Fix parser",
    "description": "Handles renames",
    "state": "OPEN",
    "author": {"display_name": "Sam"},
    "source": {"branch": {"name": "fix/parser"}},
    "destination": {"branch": {"name": "main"}},
    "reviewers": [{"display_name": "Alex"}],
    "participants": [{"user": {"display_name": "Alex"}, "role": "REVIEWER", "approved": False}],
    "created_on": "2024-05-01T10:00:00+00:00",
    "updated_on": "2024-05-02T10:00:00+00:00",
    "links": {
        "html": {"href": "https://bitbucket.org/ws/repo/pull-requests/7"},
        "self": {"href": "https://api.bitbucket.org/2.0/repositories/ws/repo/pullrequests/7"},
        "diff": {"href": "https://api.bitbucket.org/2.0/repositories/ws/repo/pullrequests/7/diff"},
    },
    "close_source_branch": True,
}


class TestPullRequestFormatters:

    def test_server_pull_request(self):
        merge_info = MergeInfo(merge_commit_hash="ddd444", merged_by="Rev One", merged_at="2023-11-14T23:13:20+00:00")

        result = format_server_pull_request(SERVER_PR, merge_info, "https://bb.internal")

        assert result["description"] == "No description provided"
        assert result["author"] == "Jane Doe"
        assert result["author_username"] == "jdoe"
        assert result["source_branch"] == "feature/retries"
        assert result["destination_commit"] == "bbb222"
        assert result["reviewers"] == [{"name": "Rev One", "approved": True, "status": "APPROVED"}]
        assert result["web_url"] == "https://bb.internal/projects/PROJ/repos/api/pull-requests/42"
        assert result["is_merged"] is True
        assert result["merge_commit_hash"] == "ddd444"
        assert result["merged_by"] == "Rev One"
        assert result["created_on"].startswith("2023-11-14T22:13:20")

    def test_server_merge_commit_falls_back_to_properties(self):
        result = format_server_pull_request(SERVER_PR, None, "https://bb.internal")

        assert result["merge_commit_hash"] == "ccc333"
        assert result["merged_by"] is None

    def test_cloud_pull_request(self):
        result = format_cloud_pull_request(CLOUD_PR)

        assert result["description"] == "Handles renames"
        assert result["source_branch"] == "fix/parser"
        assert result["reviewers"] == ["Alex"]
        assert result["diff_url"].endswith("/pullrequests/7/diff")
        assert result["is_merged"] is False
        assert result["merged_at"] is None
        assert result["close_source_branch"] is True

    def test_cloud_merged(self):
        pr = dict(CLOUD_PR, state="MERGED", merge_commit={"hash": "eee555"}, closed_by={"display_name": "Sam"})

        result = format_cloud_pull_request(pr)

        assert result["merge_commit_hash"] == "eee555"
        assert result["merged_by"] == "Sam"
        assert result["merged_at"] == CLOUD_PR["updated_on"]


class TestCommentAndChangeFormatters:

    def test_server_comment_with_replies(self):
        comment = {
            "id": 1,
            "text": "Why?",
            "author": {"displayName": "Jane"},
            "createdDate": 1700000000000,
            "state": "OPEN",
            "comments": [{"id": 2, "text": "Because", "author": {"displayName": "Sam"}}],
        }

        result = format_server_comment(comment, {"path": "src/app.py", "line": 3, "lineType": "ADDED"})

        assert result["file_path"] == "src/app.py"
        assert result["line_number"] == 3
        assert result["replies"][0]["text"] == "Because"
        assert result["replies"][0]["file_path"] is None

    def test_cloud_inline_comment(self):
        comment = {
            "id": 9,
            "content": {"raw": "nit"},
            "user": {"display_name": "Alex"},
            "inline": {"path": "a.py", "from": 4, "to": None},
            "parent": {"id": 8},
        }

        result = format_cloud_comment(comment)

        assert result["text"] == "nit"
        assert result["parent_id"] == 8
        assert result["line_number"] == 4
        assert result["line_type"] == "REMOVED"

    def test_null_nested_fields(self):
        comment = {"id": 10, "content": None, "user": None, "inline": None, "parent": None}

        result = format_cloud_comment(comment)

        assert result["author"] is None
        assert result["text"] is None
        assert result["file_path"] is None

        server = format_server_comment({"id": 3, "text": "hi", "author": None, "comments": None})
        assert server["author"] is None
        assert server["replies"] == []

    def test_file_changes(self):
        assert format_server_file_change(
            {"path": {"toString": "b.py"}, "srcPath": {"toString": "a.py"}, "type": "MOVE"}
        ) == {"path": "b.py", "status": "renamed", "old_path": "a.py"}
        assert format_server_file_change({"path": {"toString": "c.py"}, "type": "MODIFY"})["status"] == "modified"

        cloud = format_cloud_file_change({
            "status": "removed",
            "old": {"path": "gone.py"},
            "new": None,
            "lines_added": 0,
            "lines_removed": 12,
        })
        assert cloud["path"] == "gone.py"
        assert cloud["old_path"] is None
        assert cloud["lines_removed"] == 12

    def test_summarize_comments(self):
        comments = [{"file_path": "a.py"}, {"file_path": None}, {"file_path": "b.py"}]
        assert summarize_comments(comments) == {"total": 3, "inline": 2, "general": 1}


class TestSuggestionComment:

    def test_single_line(self):
        assert format_suggestion_comment("Use a constant", "TIMEOUT = 30", 5) == (
            "Use a constant\n\n```suggestion\nTIMEOUT = 30\n```"
        )

    def test_multi_line_range(self):
        text = format_suggestion_comment("Simplify", "return x", 10, 12)
        assert text.startswith("Simplify (lines 10-12)\n\n```suggestion\n")

    def test_end_line_not_after_start(self):
        assert "(lines" not in format_suggestion_comment("Same line", "y", 10, 10)


def test_format_timestamp():
    assert format_timestamp(None) is None
    assert format_timestamp("2024-05-01T10:00:00+00:00") == "2024-05-01T10:00:00+00:00"
    assert format_timestamp(0) == "1970-01-01T00:00:00+00:00"
