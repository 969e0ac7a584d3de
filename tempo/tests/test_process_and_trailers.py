import unittest

import psutil

from tempo.models import Confidence, Method, Tool
from tempo.process_detector import ProcessDetector
from tempo.trailers import detect_trailers, identity_tokens, match_identity, trailer_identities


class ProcessDetectorTests(unittest.TestCase):
    def test_detects_known_names_once_per_tool(self) -> None:
        detector = ProcessDetector(
            names_provider=lambda: ["zsh", "Cursor", "cursor", "codex", "claude", "node"],
            platform="darwin",
        )
        self.assertEqual(detector.detect(), [Tool.CLAUDE_CODE, Tool.CURSOR, Tool.CODEX])

    def test_names_are_exact_matches(self) -> None:
        detector = ProcessDetector(names_provider=lambda: ["claude-helper", "aider.py"], platform="linux")
        self.assertEqual(detector.detect(), [])

    def test_windows_reports_nothing(self) -> None:
        detector = ProcessDetector(names_provider=lambda: ["claude"], platform="win32")
        self.assertFalse(detector.supported())
        self.assertEqual(detector.detect(), [])

    def test_unreadable_process_table_reports_nothing(self) -> None:
        def denied():
            raise psutil.AccessDenied()

        self.assertEqual(ProcessDetector(names_provider=denied, platform="linux").detect(), [])

    def test_default_provider_reads_live_table(self) -> None:
        detector = ProcessDetector(platform="linux")
        self.assertIsInstance(detector.detect(), list)


class TrailerTests(unittest.TestCase):
    def test_identity_tokens(self) -> None:
        self.assertEqual(
            identity_tokens("GitHub-Copilot", "bot@example.com"),
            {"github-copilot", "github", "copilot", "bot"},
        )
        self.assertEqual(identity_tokens("", ""), set())
        self.assertEqual(identity_tokens("aider (anthropic/claude-3-7-sonnet)"), {"aider"})

    def test_known_identities(self) -> None:
        cases = {
            ("Claude", "noreply@anthropic.com"): Tool.CLAUDE_CODE,
            ("Claude Code", ""): Tool.CLAUDE_CODE,
            ("Cursor Agent", "cursoragent@cursor.com"): Tool.CURSOR,
            ("Copilot", "175728472+Copilot@users.noreply.github.com"): Tool.COPILOT,
            ("aider (openai/gpt-4o)", "noreply@aider.chat"): Tool.AIDER,
            ("", "codex@openai.com"): Tool.CODEX,
            ("aider (anthropic/claude-3-7-sonnet-20250219)", "aider@aider.chat"): Tool.AIDER,
            ("aider (openai/codex-mini-latest)", ""): Tool.AIDER,
            ("Coding Bot", "codex@example.com"): Tool.CODEX,
        }
        for (name, email), tool in cases.items():
            with self.subTest(name=name, email=email):
                self.assertEqual(match_identity(name, email), tool)

    def test_unknown_and_ambiguous_identities_are_skipped(self) -> None:
        self.assertIsNone(match_identity("Jane Doe", "jane@example.com"))
        self.assertIsNone(match_identity("Claude via Cursor", ""))

    def test_trailer_lines(self) -> None:
        message = (
            "Add parser\n\n"
            "Some body text mentioning Co-authored-by inline.\n"
            "co-authored-by: Claude <noreply@anthropic.com>\n"
            "Co-Authored-By:   Jane Doe   <jane@example.com>  \n"
            "Co-authored-by: Aider\n"
        )
        self.assertEqual(
            trailer_identities(message),
            [("Claude", "noreply@anthropic.com"), ("Jane Doe", "jane@example.com"), ("Aider", "")],
        )

    def test_detect_trailers_deduplicates_tools(self) -> None:
        message = (
            "Co-authored-by: Claude <noreply@anthropic.com>\n"
            "Co-authored-by: Claude Code <claude@anthropic.com>\n"
            "Co-authored-by: Jane Doe <jane@example.com>\n"
        )
        detections = detect_trailers(message, files_committed=4)
        self.assertEqual(len(detections), 1)
        self.assertEqual(detections[0].tool, Tool.CLAUDE_CODE)
        self.assertEqual(detections[0].method, Method.TRAILER)
        self.assertEqual(detections[0].confidence, Confidence.MEDIUM)
        self.assertEqual(detections[0].files_committed, 4)
        self.assertEqual(detect_trailers(""), [])

    def test_aider_trailer_naming_another_vendor_model(self) -> None:
        message = (
            "feat: add parser\n\n"
            "Co-authored-by: aider (anthropic/claude-3-7-sonnet-20250219) <aider@aider.chat>\n"
        )
        detections = detect_trailers(message, files_committed=1)
        self.assertEqual([d.tool for d in detections], [Tool.AIDER])


if __name__ == "__main__":
    unittest.main()
