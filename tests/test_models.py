import unittest

from privacyblur.models import (
    Rect, Blur, Pixelate, Block, Text, with_rect, action_to_dict, action_from_dict,
)


class RectTest(unittest.TestCase):
    def test_from_points_normalizes(self):
        self.assertEqual(Rect.from_points(50, 40, 10, 10), Rect(10, 10, 40, 30))

    def test_negative_size_rejected(self):
        with self.assertRaises(ValueError):
            Rect(0, 0, -1, 5)

    def test_contains_is_inclusive(self):
        r = Rect(10, 10, 20, 20)
        self.assertTrue(r.contains(10, 10))
        self.assertTrue(r.contains(30, 30))
        self.assertFalse(r.contains(30.5, 20))

    def test_committable(self):
        self.assertFalse(Rect(0, 0, 4.9, 100).is_committable())
        self.assertFalse(Rect(0, 0, 100, 4).is_committable())
        self.assertTrue(Rect(0, 0, 5, 5).is_committable())

    def test_to_box_clips(self):
        self.assertEqual(Rect(-10, 190, 50, 50).to_box(200, 200), (0, 190, 40, 200))
        left, top, right, bottom = Rect(300, 300, 10, 10).to_box(200, 200)
        self.assertLessEqual(right, left)


class ActionTest(unittest.TestCase):
    def test_with_rect_keeps_params(self):
        moved = with_rect(Pixelate(Rect(0, 0, 10, 10), cell_size=7), Rect(5, 5, 10, 10))
        self.assertEqual(moved.cell_size, 7)
        self.assertEqual(moved.rect.x, 5)

    def test_dict_form(self):
        data = action_to_dict(Text(Rect(1, 2, 30, 40), text="REDACTED"))
        self.assertEqual(data["type"], "text")
        self.assertEqual(data["rect"], {"x": 1, "y": 2, "w": 30, "h": 40})
        self.assertEqual(action_from_dict(data), Text(Rect(1, 2, 30, 40), text="REDACTED"))

    def test_from_dict_defaults(self):
        action = action_from_dict({"type": "blur", "rect": {"x": 0, "y": 0, "w": 10, "h": 10}})
        self.assertEqual(action, Blur(Rect(0, 0, 10, 10)))

    def test_from_dict_errors(self):
        with self.assertRaises(ValueError):
            action_from_dict({"type": "smudge", "rect": {"x": 0, "y": 0, "w": 1, "h": 1}})
        with self.assertRaises(ValueError):
            action_from_dict({"type": "block", "rect": {"x": 0}})
        with self.assertRaises(ValueError):
            action_from_dict({"type": "block", "rect": {"x": 0, "y": 0, "w": 1, "h": 1}, "radius": 3})
        with self.assertRaises(ValueError):
            action_from_dict(1)
        with self.assertRaises(ValueError):
            action_from_dict({"type": "block", "rect": [0, 0, 1, 1]})

    def test_actions_are_immutable(self):
        block = Block(Rect(0, 0, 10, 10))
        with self.assertRaises(AttributeError):
            block.fill_color = "#fff"


if __name__ == '__main__':
    unittest.main()
