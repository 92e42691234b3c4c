"""Prompt for the activity summary — deterministic digest of the merged data."""

from __future__ import annotations

from collections.abc import Sequence

from ghrecap.engines.activity_collector.models import EnrichedCommit, IssueOrPR

SUMMARY_INSTRUCTIONS = """\
Please structure your response in markdown with:
1. A brief overview of total activity
2. Key highlights and patterns
3. Most significant changes or contributions
4. Notable repositories worked on

Keep the summary professional and focused on technical details. Use bullet \
points and sections to organize the information."""

_SEPARATOR = "\n---\n"


def format_commit(commit: EnrichedCommit) -> str:
    return (
        f"Repository: {commit.repository_name_with_owner}\n"
        f"Message: {commit.message_headline}\n"
        f"Changes: +{commit.additions} -{commit.deletions} lines\n"
        f"Date: {commit.committed_date.date().isoformat()}"
    )


def format_issue_or_pr(item: IssueOrPR) -> str:
    return (
        f"Type: {item.type.upper()}\n"
        f"Repository: {item.repository}\n"
        f"Title: {item.title}\n"
        f"State: {item.state}\n"
        f"Number: #{item.number}\n"
        f"Updated: {item.updated_at.date().isoformat()}"
    )


def build_summary_prompt(
    actor: str,
    commits: Sequence[EnrichedCommit],
    issues_and_prs: Sequence[IssueOrPR],
) -> str:
    """Same input always yields the same prompt text."""
    commits_text = _SEPARATOR.join(format_commit(c) for c in commits) or "(none)"
    items_text = _SEPARATOR.join(format_issue_or_pr(i) for i in issues_and_prs) or "(none)"
    return (
        f"Please analyze the following GitHub activity for {actor} and provide a "
        "clear, concise summary in markdown format. Focus on the most significant "
        "changes and patterns.\n\n"
        f"COMMITS:\n{commits_text}\n\n"
        f"ISSUES AND PULL REQUESTS:\n{items_text}\n\n"
        f"{SUMMARY_INSTRUCTIONS}"
    )
