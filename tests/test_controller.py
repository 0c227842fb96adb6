import unittest

from PIL import Image

from privacyblur.controller import InteractionController, PointerEvent, MAX_SCALE
from privacyblur.models import Rect, Block, Text, Tool
from privacyblur.store import DocumentStore


def drag(ctrl, start, end, pointer_id=0):
    ctrl.pointer_down(PointerEvent(pointer_id, *start))
    ctrl.pointer_move(PointerEvent(pointer_id, *end))
    ctrl.pointer_up(PointerEvent(pointer_id, *end))


class ControllerTestCase(unittest.TestCase):
    def setUp(self):
        self.store = DocumentStore()
        self.store.load_pages([Image.new("RGB", (200, 200), "white")])
        self.frames = []
        self.requests = []
        self.ctrl = InteractionController(self.store, on_render=self.frames.append,
                                          on_text_request=self.requests.append)


class DrawTest(ControllerTestCase):
    def test_small_rect_discarded(self):
        self.ctrl.set_tool(Tool.BLOCK)
        drag(self.ctrl, (10, 10), (14, 100))
        self.assertEqual(self.store.actions(), ())

    def test_draw_commits_normalized_rect(self):
        self.ctrl.set_tool(Tool.BLUR)
        drag(self.ctrl, (110, 60), (10, 10))
        (action,) = self.store.actions()
        self.assertEqual(action.rect, Rect(10, 10, 100, 50))
        self.assertEqual(action.radius, self.ctrl.settings.blur_radius)
        self.assertTrue(self.frames)

    def test_draw_on_empty_store_ignored(self):
        ctrl = InteractionController(DocumentStore())
        ctrl.set_tool(Tool.BLOCK)
        drag(ctrl, (0, 0), (50, 50))
        self.assertTrue(ctrl.store.is_empty)

    def test_zoomed_coordinates_map_to_raster(self):
        self.ctrl.viewport.scale = 2.0
        self.ctrl.set_tool(Tool.BLOCK)
        drag(self.ctrl, (20, 20), (120, 120))
        self.assertEqual(self.store.actions()[0].rect, Rect(10, 10, 50, 50))


class MoveTest(ControllerTestCase):
    def test_drag_moves_topmost(self):
        self.store.add_action(0, Block(Rect(0, 0, 100, 100)))
        self.store.add_action(0, Block(Rect(20, 20, 40, 40), fill_color="#ff0000"))
        drag(self.ctrl, (30, 30), (50, 50))
        first, second = self.store.actions()
        self.assertEqual(first.rect, Rect(0, 0, 100, 100))
        self.assertEqual(second.rect, Rect(40, 40, 40, 40))
        self.assertEqual(second.fill_color, "#ff0000")

    def test_click_on_empty_deselects(self):
        self.store.add_action(0, Block(Rect(0, 0, 10, 10)))
        self.store.select(0)
        drag(self.ctrl, (150, 150), (150, 150))
        self.assertIsNone(self.store.selection)

    def test_text_recolored_after_move(self):
        base = Image.new("RGB", (200, 200), "white")
        base.paste((0, 0, 0), (120, 0, 200, 200))
        self.store.load_pages([base])
        self.store.add_action(0, Text(Rect(10, 10, 40, 40), fill_color="rgb(255, 255, 255)",
                                      text_color="#000000", text="A"))
        drag(self.ctrl, (20, 20), (170, 20))
        (moved,) = self.store.actions()
        self.assertEqual(moved.rect, Rect(160, 10, 40, 40))
        self.assertEqual(moved.fill_color, "rgb(0, 0, 0)")
        self.assertEqual(moved.text_color, "#ffffff")

    def test_tiny_move_keeps_text_colors(self):
        self.store.add_action(0, Text(Rect(10, 10, 40, 40), fill_color="#123456", text="A"))
        drag(self.ctrl, (20, 20), (22, 21))
        self.assertEqual(self.store.actions()[0].fill_color, "#123456")


class GestureTest(ControllerTestCase):
    def test_pinch_scales_and_clamps(self):
        self.ctrl.pointer_down(PointerEvent(1, 0, 0))
        self.ctrl.pointer_down(PointerEvent(2, 100, 0))
        self.ctrl.pointer_move(PointerEvent(2, 200, 0))
        self.assertAlmostEqual(self.ctrl.viewport.scale, 2.0)
        self.ctrl.pointer_move(PointerEvent(2, 1000, 0))
        self.assertEqual(self.ctrl.viewport.scale, MAX_SCALE)
        self.ctrl.pointer_up(PointerEvent(2, 1000, 0))
        self.ctrl.pointer_up(PointerEvent(1, 0, 0))
        self.assertEqual(self.store.actions(), ())

    def test_wheel(self):
        self.ctrl.wheel(-120)
        self.assertAlmostEqual(self.ctrl.viewport.scale, 1.1)
        self.ctrl.wheel(120)
        self.assertAlmostEqual(self.ctrl.viewport.scale, 0.99)
        for _ in range(100):
            self.ctrl.wheel(120)
        self.assertAlmostEqual(self.ctrl.viewport.scale, 0.2)


class TextToolTest(ControllerTestCase):
    def test_new_label(self):
        self.ctrl.set_tool(Tool.TEXT)
        drag(self.ctrl, (10, 10), (110, 60))
        self.assertEqual(self.store.actions(), ())
        (request,) = self.requests
        self.assertIsNone(request.index)
        self.assertEqual(request.colors.background, "rgb(255, 255, 255)")
        self.assertEqual(request.colors.text, "#000000")

        self.assertTrue(self.ctrl.confirm_text("REDACTED"))
        (label,) = self.store.actions()
        self.assertEqual(label.text, "REDACTED")
        self.assertEqual(label.rect, Rect(10, 10, 100, 50))

    def test_cancel_adds_nothing(self):
        self.ctrl.set_tool(Tool.TEXT)
        drag(self.ctrl, (10, 10), (110, 60))
        self.ctrl.cancel_text()
        self.assertFalse(self.ctrl.confirm_text("late"))
        self.assertEqual(self.store.actions(), ())

    def test_double_click_edits_in_place(self):
        self.store.add_action(0, Block(Rect(0, 0, 200, 200)))
        self.store.add_action(0, Text(Rect(10, 10, 100, 50), text="old", font_size=20))
        self.store.add_action(0, Block(Rect(150, 150, 20, 20)))
        self.ctrl.double_click(50, 30)
        request = self.ctrl.pending_text
        self.assertEqual(request.index, 1)
        self.assertEqual(request.text, "old")
        self.ctrl.confirm_text("new", background="#ffffff")
        actions = self.store.actions()
        self.assertEqual(len(actions), 3)
        self.assertEqual(actions[1].text, "new")
        self.assertEqual(actions[1].font_size, 20)
        self.assertEqual(actions[1].text_color, "#000000")
        self.assertIsNone(self.store.selection)

    def test_edit_follows_label_after_earlier_delete(self):
        self.store.add_action(0, Block(Rect(0, 0, 200, 200)))
        self.store.add_action(0, Text(Rect(10, 10, 100, 50), text="old"))
        red = Block(Rect(150, 150, 20, 20), fill_color="#ff0000")
        self.store.add_action(0, red)
        self.ctrl.double_click(50, 30)
        self.store.delete_at(0, 0)
        self.assertTrue(self.ctrl.confirm_text("new"))
        label, block = self.store.actions()
        self.assertEqual(label.text, "new")
        self.assertIs(block, red)

    def test_edit_of_removed_label_is_dropped(self):
        self.store.add_action(0, Text(Rect(10, 10, 100, 50), text="old"))
        self.store.add_action(0, Block(Rect(150, 150, 20, 20)))
        self.ctrl.double_click(50, 30)
        self.store.delete_at(0, 0)
        self.store.add_action(0, Text(Rect(0, 0, 20, 20), text="other"))
        self.assertFalse(self.ctrl.confirm_text("new"))
        texts = [a.text for a in self.store.actions() if isinstance(a, Text)]
        self.assertEqual(texts, ["other"])

    def test_label_not_placed_on_new_document(self):
        self.ctrl.set_tool(Tool.TEXT)
        drag(self.ctrl, (10, 10), (110, 60))
        self.store.load_pages([Image.new("RGB", (200, 200), "white")])
        self.assertFalse(self.ctrl.confirm_text("late"))
        self.assertEqual(self.store.actions(), ())

    def test_double_click_ignored_while_drawing(self):
        self.store.add_action(0, Text(Rect(10, 10, 100, 50), text="old"))
        self.ctrl.set_tool(Tool.BLUR)
        self.ctrl.double_click(50, 30)
        self.assertIsNone(self.ctrl.pending_text)

    def test_selected_background_override(self):
        self.store.add_action(0, Text(Rect(10, 10, 100, 50), text="x"))
        self.store.select(0)
        self.assertTrue(self.ctrl.set_selected_background("#eeeeee"))
        self.assertEqual(self.store.actions()[0].text_color, "#000000")

    def test_selected_font_size_and_edit_button(self):
        self.store.add_action(0, Text(Rect(10, 10, 100, 50), text="x"))
        self.store.select(0)
        self.assertTrue(self.ctrl.set_selected_font_size(40))
        self.assertEqual(self.store.actions()[0].font_size, 40)
        self.ctrl.edit_selected()
        self.assertEqual(self.requests[-1].index, 0)
        self.assertEqual(self.requests[-1].font_size, 40)

    def test_font_size_ignored_for_non_text(self):
        self.store.add_action(0, Block(Rect(10, 10, 100, 50)))
        self.store.select(0)
        self.assertFalse(self.ctrl.set_selected_font_size(40))


class CommandTest(ControllerTestCase):
    def test_delete_and_undo(self):
        self.store.add_action(0, Block(Rect(0, 0, 10, 10)))
        self.store.add_action(0, Block(Rect(20, 20, 10, 10)))
        self.store.select(0)
        self.assertTrue(self.ctrl.delete_selected())
        self.assertEqual(len(self.store.actions()), 1)
        self.assertTrue(self.ctrl.undo())
        self.assertFalse(self.ctrl.undo())

    def test_page_navigation(self):
        self.store.load_pages([Image.new("RGB", (50, 50)) for _ in range(2)])
        self.assertFalse(self.ctrl.prev_page())
        self.assertTrue(self.ctrl.next_page())
        self.assertEqual(self.store.current_index, 1)
        self.assertFalse(self.ctrl.next_page())

    def test_export_frame_has_no_overlays(self):
        self.store.add_action(0, Block(Rect(0, 0, 10, 10)))
        self.store.select(0)
        clean = self.ctrl.render(overlays=False)
        self.assertEqual(clean.getpixel((100, 100)), (255, 255, 255))
        self.assertEqual(clean.getpixel((10, 5)), (255, 255, 255))


if __name__ == '__main__':
    unittest.main()
