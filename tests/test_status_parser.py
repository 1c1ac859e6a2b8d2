import unittest

from stratagem_vision.analysis.status_parser import (
    StatusLine,
    StatusTextParser,
    best_canonical_match,
    normalize_for_matching,
    normalize_line,
    parse_cooldown_seconds,
    parse_status_line,
    preferred_detection,
)
from stratagem_vision.models import DetectedStratagem

NAMES = [
    "Eagle Airstrike",
    "Orbital Railcannon Strike",
    "Hellbomb",
    "Resupply",
    "Reinforce",
    "Laser Cannon",
    "EAT-17 Expendable Anti-Tank",
    "Orbital 120mm HE Barrage",
]


class ParseTests(unittest.TestCase):
    def setUp(self) -> None:
        self.parser = StatusTextParser(NAMES)

    def test_name_then_ready(self) -> None:
        self.assertEqual(
            self.parser.parse(["Eagle Airstrike", "Ready"]),
            [DetectedStratagem.ready("Eagle Airstrike")],
        )

    def test_name_then_cooldown(self) -> None:
        result = self.parser.parse(["Orbital Railcannon Strike", "1:45 Cooldown"])
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].canonical_name, "Orbital Railcannon Strike")
        self.assertFalse(result[0].is_ready)
        self.assertEqual(result[0].cooldown_remaining_seconds, 105)

    def test_superseded_pending_name_is_ready(self) -> None:
        self.assertEqual(
            self.parser.parse(["Hellbomb", "Resupply", "Ready"]),
            [DetectedStratagem.ready("Hellbomb"), DetectedStratagem.ready("Resupply")],
        )

    def test_trailing_pending_name_is_ready(self) -> None:
        self.assertEqual(self.parser.parse(["Resupply"]), [DetectedStratagem.ready("Resupply")])

    def test_status_without_pending_name_is_ignored(self) -> None:
        self.assertEqual(
            self.parser.parse(["Ready", "0:30 Cooldown", "Resupply"]),
            [DetectedStratagem.ready("Resupply")],
        )

    def test_unmatched_and_empty_lines_are_skipped(self) -> None:
        result = self.parser.parse(["", "   ", "zzzz qqqq", "Hellbomb", "Unavailable"])
        self.assertEqual(
            result, [DetectedStratagem(canonical_name="Hellbomb", is_unavailable=True)]
        )

    def test_inbound_status(self) -> None:
        result = self.parser.parse(["Eagle Airstrike", "Inbound 0:05"])
        self.assertTrue(result[0].is_inbound)
        self.assertEqual(result[0].cooldown_remaining_seconds, 5)

    def test_ready_beats_cooldown_in_either_order(self) -> None:
        for lines in (
            ["Reinforce", "Ready", "Reinforce", "0:30 Cooldown"],
            ["Reinforce", "0:30 Cooldown", "Reinforce", "Ready"],
        ):
            self.assertEqual(self.parser.parse(lines), [DetectedStratagem.ready("Reinforce")])

    def test_shorter_positive_cooldown_wins(self) -> None:
        result = self.parser.parse(["Reinforce", "1:00 Cooldown", "Reinforce", "0:30 Cooldown"])
        self.assertEqual(result[0].cooldown_remaining_seconds, 30)

    def test_first_seen_order_is_kept(self) -> None:
        result = self.parser.parse(
            ["Resupply", "1:00 Cooldown", "Hellbomb", "Ready", "Resupply", "Ready"]
        )
        self.assertEqual([r.canonical_name for r in result], ["Resupply", "Hellbomb"])
        self.assertTrue(result[0].is_ready)

    def test_ocr_noise_still_matches(self) -> None:
        result = self.parser.parse(["Eagle Airstrke", "Ready", "LASTER CANNON", "2:05 Cooldown"])
        self.assertEqual(result[0].canonical_name, "Eagle Airstrike")
        self.assertEqual(result[1].canonical_name, "Laser Cannon")
        self.assertEqual(result[1].cooldown_remaining_seconds, 125)


class DedupRankTests(unittest.TestCase):
    def test_rank_order(self) -> None:
        countdown = DetectedStratagem("X", cooldown_remaining_seconds=10)
        inbound = DetectedStratagem("X", cooldown_remaining_seconds=5, is_inbound=True)
        unavailable = DetectedStratagem("X", is_unavailable=True)
        self.assertIs(preferred_detection(inbound, countdown), countdown)
        self.assertIs(preferred_detection(unavailable, inbound), inbound)
        self.assertIs(preferred_detection(unavailable, countdown), countdown)

    def test_missing_seconds_lose_to_positive(self) -> None:
        unknown = DetectedStratagem("X")
        known = DetectedStratagem("X", cooldown_remaining_seconds=10)
        self.assertIs(preferred_detection(unknown, known), known)
        self.assertIs(preferred_detection(known, unknown), known)

    def test_both_unknown_keeps_first(self) -> None:
        a = DetectedStratagem("X", is_inbound=True)
        b = DetectedStratagem("X", is_inbound=True)
        self.assertIs(preferred_detection(a, b), a)


class StatusLineTests(unittest.TestCase):
    def test_cooldown_seconds(self) -> None:
        self.assertEqual(parse_cooldown_seconds("1:45"), 105)
        self.assertEqual(parse_cooldown_seconds("2.05"), 125)
        self.assertEqual(parse_cooldown_seconds("0-30"), 30)
        self.assertEqual(parse_cooldown_seconds("Cooldown 1 : 05"), 65)
        self.assertIsNone(parse_cooldown_seconds("1:75"))
        self.assertIsNone(parse_cooldown_seconds("0:00"))
        self.assertIsNone(parse_cooldown_seconds("Cooldown"))

    def test_status_classification(self) -> None:
        self.assertEqual(parse_status_line("READY"), StatusLine(is_ready=True))
        self.assertEqual(parse_status_line("Unavailable"), StatusLine(is_unavailable=True))
        self.assertEqual(parse_status_line("Cooldown"), StatusLine())
        self.assertEqual(
            parse_status_line("Inbound 0:05"),
            StatusLine(cooldown_seconds=5, is_inbound=True),
        )
        self.assertEqual(parse_status_line("0:30"), StatusLine(cooldown_seconds=30))
        self.assertIsNone(parse_status_line("Eagle Airstrike"))
        self.assertIsNone(parse_status_line("Orbital 120mm HE Barrage"))

    def test_normalize_line(self) -> None:
        self.assertEqual(normalize_line("  Eagle  Airstrike "), "Eagle Airstrike")


class NameMatchingTests(unittest.TestCase):
    def test_normalize_for_matching(self) -> None:
        self.assertEqual(normalize_for_matching("LASTER CANNON"), "laser cannon")
        self.assertEqual(normalize_for_matching("Orbital 120mm HE Barrage"), "orbital 120 mm he barrage")
        self.assertEqual(normalize_for_matching("EAT-17 Expendable Anti-Tank"), "expendable antitank")
        self.assertEqual(normalize_for_matching("Eagle!! Airstrike"), "eagle airstrike")

    def test_equipment_code_prefix_is_stripped(self) -> None:
        self.assertEqual(
            best_canonical_match("EAT 17 Expendable Anti Tank", NAMES),
            "EAT-17 Expendable Anti-Tank",
        )

    def test_below_threshold_is_none(self) -> None:
        self.assertIsNone(best_canonical_match("Quasar", NAMES))
        self.assertIsNone(best_canonical_match("!!!", NAMES))

    def test_threshold_is_configurable(self) -> None:
        self.assertIsNone(best_canonical_match("Eagle Airstrke", NAMES, min_similarity=0.99))
        self.assertEqual(best_canonical_match("Eagle Airstrke", NAMES), "Eagle Airstrike")


if __name__ == "__main__":
    unittest.main()
