import unittest
from datetime import datetime, timezone

from cogcommit.formatters import (
    format_absolute_time,
    format_bytes,
    format_date,
    format_datetime,
    format_gap,
    format_model_name,
    format_relative_time,
    format_time,
    format_time_range,
    format_tool_input,
    generate_title_preview,
    get_closure_style,
    get_project_color,
    get_source_style,
    get_tool_summary,
)
from cogcommit.models import ToolCall

UTC = timezone.utc


class ModelNameTests(unittest.TestCase):
    def test_known_families(self) -> None:
        self.assertEqual(format_model_name("claude-opus-4-5-20251101"), "Opus 4.5")
        self.assertEqual(format_model_name("claude-opus-4-20250514"), "Opus 4")
        self.assertEqual(format_model_name("claude-sonnet-4-20250514"), "Sonnet 4")
        self.assertEqual(format_model_name("claude-3-5-sonnet-20241022"), "Sonnet 3.5")
        self.assertEqual(format_model_name("claude-3-haiku-20240307"), "Haiku")

    def test_fallbacks(self) -> None:
        self.assertEqual(format_model_name(None), "Agent")
        self.assertEqual(format_model_name(""), "Agent")
        self.assertEqual(format_model_name("gpt-5-codex"), "codex")


class TimeFormattingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.now = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)

    def test_relative_time_buckets(self) -> None:
        self.assertEqual(format_relative_time("2025-01-15T11:59:30Z", self.now, UTC), "just now")
        self.assertEqual(format_relative_time("2025-01-15T11:15:00Z", self.now, UTC), "45m ago")
        self.assertEqual(format_relative_time("2025-01-15T09:00:00Z", self.now, UTC), "3h ago")
        self.assertEqual(format_relative_time("2025-01-14T10:00:00Z", self.now, UTC), "yesterday")
        self.assertEqual(format_relative_time("2025-01-12T12:00:00Z", self.now, UTC), "3d ago")
        self.assertEqual(format_relative_time("2025-01-01T14:30:00Z", self.now, UTC), "2:30 PM")

    def test_absolute_and_card_times(self) -> None:
        self.assertEqual(format_absolute_time("2025-01-15T14:30:05Z", UTC), "Wed, Jan 15, 2:30:05 PM")
        self.assertEqual(format_time("2025-01-15T14:30:05Z", UTC), "Jan 15, 2:30 PM")
        self.assertEqual(format_time("2025-01-15T00:05:00Z", UTC), "Jan 15, 12:05 AM")

    def test_dates(self) -> None:
        self.assertEqual(format_date("2025-01-15T14:30:05Z", UTC), "1/15/2025")
        self.assertEqual(format_datetime("2025-01-15T14:30:05Z", UTC), "1/15/2025, 2:30:05 PM")
        self.assertEqual(format_date(""), "Unknown")
        self.assertEqual(format_date("not a date"), "Unknown")

    def test_gaps(self) -> None:
        self.assertEqual(format_gap(5.4), "5 min")
        self.assertEqual(format_gap(135), "2h 15m")
        self.assertEqual(format_gap(120), "2h")
        self.assertEqual(format_gap(25 * 60), "1d 1h")
        self.assertEqual(format_gap(48 * 60), "2d")

    def test_time_range_same_day_and_reversed(self) -> None:
        expected = "Jan 15, 2025 2:30 PM – 4:45 PM (2h 15m)"
        self.assertEqual(format_time_range("2025-01-15T14:30:00Z", "2025-01-15T16:45:00Z", UTC), expected)
        self.assertEqual(format_time_range("2025-01-15T16:45:00Z", "2025-01-15T14:30:00Z", UTC), expected)

    def test_time_range_across_days(self) -> None:
        self.assertEqual(
            format_time_range("2025-01-15T14:30:00Z", "2025-01-16T10:00:00Z", UTC),
            "Jan 15, 2:30 PM – Jan 16, 10:00 AM (19h 30m)",
        )


class BadgeAndToolTests(unittest.TestCase):
    def test_title_preview(self) -> None:
        self.assertEqual(generate_title_preview(None), "Empty conversation")
        self.assertEqual(generate_title_preview("  Fix the bug  "), "Fix the bug")
        self.assertEqual(
            generate_title_preview("Refactor the authentication middleware so that it validates tokens"),
            "Refactor the authentication middleware so that it…",
        )

    def test_project_color_is_stable(self) -> None:
        self.assertEqual(get_project_color("a")["text"], "text-[#6a9aaa]")
        self.assertEqual(get_project_color("cogcommit"), get_project_color("cogcommit"))

    def test_source_and_closure_styles(self) -> None:
        self.assertEqual(get_source_style("codex")["label"], "Codex")
        self.assertEqual(get_source_style(None)["label"], "Unknown")
        self.assertEqual(get_closure_style("git_commit")["label"], "committed")
        self.assertEqual(get_closure_style("session_end")["label"], "session ended")
        self.assertEqual(get_closure_style("whatever")["label"], "closed")

    def test_tool_input(self) -> None:
        self.assertEqual(format_tool_input({"command": "ls -la"}), "command: ls -la")
        self.assertEqual(format_tool_input({"file_path": "a.py"}), "file: a.py")
        self.assertEqual(format_tool_input({"foo": 1}), '{\n  "foo": 1\n}')

    def test_tool_summary(self) -> None:
        long_command = "x" * 70
        self.assertEqual(
            get_tool_summary(ToolCall(id="1", name="Bash", input={"command": long_command})),
            "x" * 60 + "...",
        )
        self.assertEqual(get_tool_summary(ToolCall(id="2", name="Grep", input={"pattern": "TODO"})), "pattern: TODO")
        self.assertEqual(get_tool_summary(ToolCall(id="3", name="Task", input={}, isError=True)), "Error")
        self.assertEqual(get_tool_summary(ToolCall(id="4", name="Task", input={})), "Task")

    def test_format_bytes(self) -> None:
        self.assertEqual(format_bytes(512), "512 B")
        self.assertEqual(format_bytes(2048), "2.0 KB")
        self.assertEqual(format_bytes(5 * 1024 * 1024), "5.0 MB")


if __name__ == "__main__":
    unittest.main()
