import unittest

from chad.discord.parsing import (
    DEFAULT_VERDICT_COLOR,
    looks_like_text,
    parse_dice,
    parse_duration,
    verdict_color,
)


class ParseDurationTests(unittest.TestCase):
    def test_units(self):
        self.assertEqual(parse_duration("90s"), 90)
        self.assertEqual(parse_duration("5m"), 300)
        self.assertEqual(parse_duration("2h"), 7200)
        self.assertEqual(parse_duration("1d"), 86400)

    def test_combined(self):
        self.assertEqual(parse_duration("1h30m"), 5400)
        self.assertEqual(parse_duration("1.5h"), 5400)

    def test_rejects_garbage(self):
        for text in ("", "5", "m5", "5x", "5m later", "abc"):
            with self.subTest(text=text):
                self.assertIsNone(parse_duration(text))


class ParseDiceTests(unittest.TestCase):
    def test_defaults_to_one_d6(self):
        self.assertEqual(parse_dice(""), (1, 6))

    def test_count_and_sides(self):
        self.assertEqual(parse_dice("2d6"), (2, 6))
        self.assertEqual(parse_dice("20"), (1, 20))

    def test_out_of_range_parts_fall_back(self):
        self.assertEqual(parse_dice("50d6"), (1, 6))
        self.assertEqual(parse_dice("3d1000"), (3, 6))
        self.assertEqual(parse_dice("500"), (1, 6))
        self.assertEqual(parse_dice("xdy"), (1, 6))


class ReplyShapeTests(unittest.TestCase):
    def test_text_versus_reaction(self):
        self.assertTrue(looks_like_text("Sure, here you go"))
        self.assertTrue(looks_like_text("42 is the answer"))
        self.assertTrue(looks_like_text("?"))
        self.assertFalse(looks_like_text("👍"))
        self.assertFalse(looks_like_text(""))

    def test_verdict_color(self):
        self.assertEqual(verdict_color("VERDICT: True - yes"), 0x27AE60)
        self.assertEqual(verdict_color("VERDICT: False - no"), 0xE74C3C)
        self.assertEqual(verdict_color("VERDICT: Partially True - meh"), 0xF39C12)
        self.assertEqual(verdict_color("VERDICT: Unclear"), DEFAULT_VERDICT_COLOR)


if __name__ == "__main__":
    unittest.main()
