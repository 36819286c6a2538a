import unittest

from cogcommit.models import CognitiveCommit, Session, Turn
from cogcommit.services.search import escape_like, extract_snippet, highlight_match
from cogcommit.services.titles import extract_first_user_message, generate_commit_title, is_warmup_commit


def _commit(*turns: tuple[str, str], title: str | None = None) -> CognitiveCommit:
    return CognitiveCommit(
        id="c1",
        startedAt="2025-01-15T10:00:00Z",
        closedAt="2025-01-15T10:05:00Z",
        title=title,
        sessions=[Session(
            id="s1",
            startedAt="2025-01-15T10:00:00Z",
            endedAt="2025-01-15T10:05:00Z",
            turns=[
                Turn(id=f"t{i}", role=role, content=content, timestamp="2025-01-15T10:00:00Z")
                for i, (role, content) in enumerate(turns)
            ],
        )],
    )


class TitleTests(unittest.TestCase):
    def test_title_comes_from_first_user_message(self) -> None:
        commit = _commit(("assistant", "Hello"), ("user", "  "), ("user", " Add retries "))
        self.assertEqual(extract_first_user_message(commit), "Add retries")
        self.assertEqual(generate_commit_title(commit), "Add retries")

    def test_long_titles_cut_at_word_boundary(self) -> None:
        commit = _commit(("user", "Please refactor the parser module now"))
        self.assertEqual(generate_commit_title(commit, max_length=20), "Please refactor the…")

    def test_existing_title_is_kept(self) -> None:
        commit = _commit(("user", "Something else"), title="My title")
        self.assertEqual(generate_commit_title(commit), "My title")

    def test_no_user_message(self) -> None:
        self.assertIsNone(generate_commit_title(_commit(("assistant", "Only me"))))

    def test_warmup_detection(self) -> None:
        self.assertTrue(is_warmup_commit(_commit(("user", "Warmup"))))
        self.assertFalse(is_warmup_commit(_commit(("user", "Real work"), ("user", "warmup"))))
        self.assertFalse(is_warmup_commit(_commit()))


class SnippetTests(unittest.TestCase):
    def test_snippet_without_match_is_head(self) -> None:
        self.assertEqual(extract_snippet("abc", "zz"), "abc")
        self.assertEqual(extract_snippet("x" * 300, "zz"), "x" * 200 + "...")

    def test_snippet_centers_on_match(self) -> None:
        content = "a" * 100 + "needle" + "b" * 100
        self.assertEqual(extract_snippet(content, "NEEDLE"), "..." + "a" * 50 + "needle" + "b" * 50 + "...")

    def test_snippet_at_start_has_no_leading_ellipsis(self) -> None:
        self.assertEqual(extract_snippet("needle in a haystack", "needle"), "needle in a haystack")

    def test_highlight_wraps_every_match(self) -> None:
        self.assertEqual(highlight_match("Foo and foo", "foo", "[", "]"), "[Foo] and [foo]")

    def test_escape_like(self) -> None:
        self.assertEqual(escape_like("50%_a\\"), "50\\%\\_a\\\\")
        self.assertEqual(escape_like("plain"), "plain")


if __name__ == "__main__":
    unittest.main()
