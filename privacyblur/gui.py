"""
tkinter front end.

The window only translates Tk events into controller calls and shows the
frames the controller renders; all editing state lives in the store.
"""

import logging
import queue
import threading
import tkinter as tk
from tkinter import ttk, filedialog, messagebox, colorchooser
from pathlib import Path
from typing import Optional

from PIL import Image, ImageTk

from . import export, ingest, ocr
from .colors import parse_color
from .config import Settings
from .controller import InteractionController, PointerEvent, TextRequest
from .models import Tool
from .store import DocumentStore
from .translations import tr

logger = logging.getLogger(__name__)

MOUSE_ID = 0
SCAN_POLL_MS = 100


class Stage(tk.Canvas):
    """Canvas showing the current frame under the controller's viewport."""

    def __init__(self, master, controller: InteractionController):
        super().__init__(master, bg="#1f1f1f", highlightthickness=0)
        self.controller = controller
        self.photo = None

    def show(self, frame: Image.Image):
        vp = self.controller.viewport
        w = max(1, round(frame.width / vp.ratio_x * vp.scale))
        h = max(1, round(frame.height / vp.ratio_y * vp.scale))
        shown = frame if (w, h) == frame.size else frame.resize((w, h), Image.Resampling.BILINEAR)
        self.photo = ImageTk.PhotoImage(shown)
        self.delete("all")
        self.create_image(vp.offset_x, vp.offset_y, image=self.photo, anchor="nw")

    def show_message(self, text: str):
        self.photo = None
        self.delete("all")
        self.create_text(self.winfo_width() // 2 or 300, self.winfo_height() // 2 or 200,
                         text=text, fill="#a3a3a3")


class TextDialog(tk.Toplevel):
    def __init__(self, app: "RedactorGUI", request: TextRequest):
        super().__init__(app.root)
        self.app = app
        self.background = request.colors.background
        self.title(app.t("edit_text" if request.index is not None else "enter_text"))
        self.transient(app.root)
        self.resizable(False, False)

        self.text_var = tk.StringVar(value=request.text)
        self.size_var = tk.IntVar(value=request.font_size)

        entry = ttk.Entry(self, textvariable=self.text_var, width=40)
        entry.pack(padx=10, pady=(10, 5), fill=tk.X)
        entry.focus_set()

        row = ttk.Frame(self)
        row.pack(padx=10, pady=5, fill=tk.X)
        ttk.Label(row, text=app.t("font_size")).pack(side=tk.LEFT)
        ttk.Scale(row, from_=10, to=80, variable=self.size_var, orient=tk.HORIZONTAL).pack(
            side=tk.LEFT, fill=tk.X, expand=True, padx=5)
        self.swatch = tk.Button(row, text=app.t("background"), command=self.pick_background, width=10)
        self.swatch.pack(side=tk.LEFT)
        self._paint_swatch()

        btns = ttk.Frame(self)
        btns.pack(pady=(5, 10))
        ttk.Button(btns, text=app.t("cancel"), command=self.cancel).pack(side=tk.LEFT, padx=5)
        ttk.Button(btns, text=app.t("ok"), command=self.confirm).pack(side=tk.LEFT, padx=5)

        self.bind("<Return>", lambda e: self.confirm())
        self.bind("<Escape>", lambda e: self.cancel())
        self.protocol("WM_DELETE_WINDOW", self.cancel)
        self.grab_set()

    def _paint_swatch(self):
        try:
            self.swatch.config(bg=self._hex(self.background))
        except tk.TclError:
            pass

    def _hex(self, color: str) -> str:
        return "#%02x%02x%02x" % parse_color(color)

    def pick_background(self):
        _, chosen = colorchooser.askcolor(color=self._hex(self.background), parent=self)
        if chosen:
            self.background = chosen
            self._paint_swatch()

    def confirm(self):
        self.app.controller.confirm_text(self.text_var.get(), font_size=int(self.size_var.get()),
                                         background=self.background)
        self.destroy()

    def cancel(self):
        self.app.controller.cancel_text()
        self.destroy()


class RedactorGUI:
    def __init__(self, root: tk.Tk, settings: Optional[Settings] = None):
        self.root = root
        self.settings = settings or Settings.load()
        self.store = DocumentStore()
        self.controller = InteractionController(self.store, self.settings,
                                                on_render=self.on_frame,
                                                on_text_request=self.on_text_request)
        self.scan_results: queue.Queue = queue.Queue()
        self.ocr_processor = ocr.OCRProcessor()

        self.root.title(self.t("title"))
        self.root.geometry(self.settings.window_geometry or "1200x800")

        self.setup_ui()
        self.bind_events()
        self.refresh_all()

        last = self.settings.last_file
        if last and Path(last).exists():
            self.open_file(last)

    def t(self, key: str, **kwargs) -> str:
        return tr(self.settings.language, key, **kwargs)

    # ---------------------- UI setup ---------------------------
    def setup_ui(self):
        for child in self.root.winfo_children():
            child.destroy()

        toolbar = ttk.Frame(self.root)
        toolbar.pack(side=tk.TOP, fill=tk.X)

        ttk.Button(toolbar, text=self.t("open"), command=self.open_file).pack(side=tk.LEFT, padx=5)
        ttk.Button(toolbar, text=self.t("paste"), command=self.paste).pack(side=tk.LEFT)

        ttk.Separator(toolbar, orient="vertical").pack(side=tk.LEFT, fill=tk.Y, padx=3)

        self.tool_var = tk.StringVar(value=self.controller.tool.name)
        for tool in Tool:
            ttk.Radiobutton(toolbar, text=self.t(f"tool_{tool.name.lower()}"), variable=self.tool_var,
                            value=tool.name, command=self.on_tool_change).pack(side=tk.LEFT)

        ttk.Separator(toolbar, orient="vertical").pack(side=tk.LEFT, fill=tk.Y, padx=3)

        self.blur_var = tk.IntVar(value=self.settings.blur_radius)
        self.pixel_var = tk.IntVar(value=self.settings.pixel_size)
        ttk.Label(toolbar, text=self.t("slider_blur")).pack(side=tk.LEFT)
        ttk.Scale(toolbar, from_=2, to=40, variable=self.blur_var, length=80,
                  command=lambda v: self.on_param_change()).pack(side=tk.LEFT)
        ttk.Label(toolbar, text=self.t("slider_pixel")).pack(side=tk.LEFT)
        ttk.Scale(toolbar, from_=4, to=64, variable=self.pixel_var, length=80,
                  command=lambda v: self.on_param_change()).pack(side=tk.LEFT)
        self.color_btn = tk.Button(toolbar, text=self.t("color"), command=self.pick_block_color, width=6)
        self.color_btn.pack(side=tk.LEFT, padx=3)
        self._paint_color_button()

        ttk.Button(toolbar, text=self.t("language"), command=self.toggle_language).pack(side=tk.RIGHT, padx=5)

        actions = ttk.Frame(self.root)
        actions.pack(side=tk.TOP, fill=tk.X)
        ttk.Button(actions, text=self.t("undo"), command=self.controller.undo).pack(side=tk.LEFT, padx=5)
        ttk.Button(actions, text=self.t("delete"), command=self.controller.delete_selected).pack(side=tk.LEFT)
        ttk.Button(actions, text=self.t("edit"), command=self.controller.edit_selected).pack(side=tk.LEFT)
        ttk.Button(actions, text=self.t("clear_all"), command=self.controller.clear_all).pack(side=tk.LEFT)
        self.scan_btn = ttk.Button(actions, text=self.t("auto_detect"), command=self.auto_detect)
        self.scan_btn.pack(side=tk.LEFT, padx=5)

        ttk.Button(actions, text=self.t("export") + " PDF", command=lambda: self.export("pdf")).pack(side=tk.RIGHT)
        ttk.Button(actions, text=self.t("export") + " JPG", command=lambda: self.export("jpg")).pack(side=tk.RIGHT)
        ttk.Button(actions, text=self.t("export") + " PNG", command=lambda: self.export("png")).pack(side=tk.RIGHT)
        ttk.Button(actions, text=self.t("copy"), command=self.copy).pack(side=tk.RIGHT, padx=5)

        nav = ttk.Frame(self.root)
        nav.pack(side=tk.BOTTOM, fill=tk.X)
        ttk.Button(nav, text=self.t("prev_page"), command=self.controller.prev_page).pack(side=tk.LEFT)
        ttk.Button(nav, text=self.t("next_page"), command=self.controller.next_page).pack(side=tk.LEFT)
        self.page_label = ttk.Label(nav, text="")
        self.page_label.pack(side=tk.LEFT, padx=10)
        self.status_bar = ttk.Label(nav, text="", relief=tk.SUNKEN)
        self.status_bar.pack(side=tk.LEFT, fill=tk.X, expand=True)

        self.stage = Stage(self.root, self.controller)
        self.stage.pack(fill=tk.BOTH, expand=True)

    def bind_events(self):
        self.stage.bind("<ButtonPress-1>", lambda e: self.controller.pointer_down(PointerEvent(MOUSE_ID, e.x, e.y)))
        self.stage.bind("<B1-Motion>", lambda e: self.controller.pointer_move(PointerEvent(MOUSE_ID, e.x, e.y)))
        self.stage.bind("<ButtonRelease-1>", lambda e: self.controller.pointer_up(PointerEvent(MOUSE_ID, e.x, e.y)))
        self.stage.bind("<Double-Button-1>", lambda e: self.controller.double_click(e.x, e.y))

        # Middle mouse pans
        self.stage.bind("<ButtonPress-2>", self.start_pan)
        self.stage.bind("<B2-Motion>", self.drag_pan)

        self.stage.bind("<MouseWheel>", lambda e: self.controller.wheel(-e.delta))
        self.stage.bind("<Button-4>", lambda e: self.controller.wheel(-1))  # Linux
        self.stage.bind("<Button-5>", lambda e: self.controller.wheel(1))  # Linux
        self.stage.bind("<Configure>", lambda e: self.refresh_all())

        self.root.bind("<Control-z>", lambda e: self.controller.undo())
        self.root.bind("<Delete>", lambda e: self.controller.delete_selected())
        self.root.bind("<BackSpace>", lambda e: self.controller.delete_selected())
        self.root.bind("<Left>", lambda e: self.controller.prev_page())
        self.root.bind("<Right>", lambda e: self.controller.next_page())
        self.root.bind("<Control-o>", lambda e: self.open_file())
        self.root.bind("<Control-v>", lambda e: self.paste())
        self.root.bind("<Control-c>", lambda e: self.copy())
        self.root.bind("<Control-s>", lambda e: self.export("png"))

    # ---------------------- rendering --------------------------
    def on_frame(self, frame: Image.Image):
        self.stage.show(frame)
        self.update_labels()

    def refresh_all(self):
        if self.store.is_empty:
            self.stage.show_message(self.t("no_document"))
            self.update_labels()
            return
        self.controller.refresh()

    def update_labels(self):
        if self.store.is_empty:
            self.page_label.config(text="")
        else:
            self.page_label.config(text=f"{self.store.current_index + 1} / {self.store.page_count}")

    def set_status(self, text: str):
        self.status_bar.config(text=text)

    # ---------------------- tools ------------------------------
    def on_tool_change(self):
        self.controller.set_tool(Tool[self.tool_var.get()])

    def on_param_change(self):
        self.settings.blur_radius = int(self.blur_var.get())
        self.settings.pixel_size = int(self.pixel_var.get())

    def _paint_color_button(self):
        self.color_btn.config(bg=self.settings.block_color)

    def pick_block_color(self):
        _, chosen = colorchooser.askcolor(color=self.settings.block_color, parent=self.root)
        if chosen:
            self.settings.block_color = chosen
            self._paint_color_button()

    def toggle_language(self):
        self.settings.language = "zh" if self.settings.language == "en" else "en"
        self.settings.save()
        self.root.title(self.t("title"))
        self.setup_ui()
        self.bind_events()
        self.refresh_all()

    def start_pan(self, event):
        self._pan_last = (event.x, event.y)

    def drag_pan(self, event):
        lx, ly = getattr(self, "_pan_last", (event.x, event.y))
        self._pan_last = (event.x, event.y)
        self.controller.pan_by(event.x - lx, event.y - ly)

    def on_text_request(self, request: TextRequest):
        TextDialog(self, request)

    # ---------------------- documents --------------------------
    def open_file(self, path=None):
        filename = path or filedialog.askopenfilename(filetypes=[
            ("Images and PDFs", "*.png *.jpg *.jpeg *.bmp *.gif *.webp *.pdf"),
            ("All files", "*.*"),
        ])
        if not filename:
            return
        self.set_status(filename)
        self.root.update_idletasks()
        if not self.store.load_pages(ingest.load_path(filename)):
            messagebox.showerror(self.t("title"), self.t("load_failed"), parent=self.root)
            return
        self.controller.cancel_text()
        self.settings.last_file = str(filename)
        self.refresh_all()

    def paste(self):
        if self.store.load_pages(ingest.grab_clipboard()):
            self.controller.cancel_text()
            self.refresh_all()

    # ---------------------- OCR --------------------------------
    def auto_detect(self):
        ticket = self.store.begin_scan()
        if ticket is None:
            return
        self.scan_btn.config(text=self.t("scanning"), state="disabled")
        base = self.store.current_page.base
        radius = self.settings.blur_radius

        def work():
            try:
                actions = ocr.blur_actions(self.ocr_processor.recognize(base), radius)
            except Exception as e:
                logger.error("OCR failed: %s", e)
                self.scan_results.put((ticket, None, e))
                return
            self.scan_results.put((ticket, actions, None))

        threading.Thread(target=work, daemon=True).start()
        self.root.after(SCAN_POLL_MS, self.poll_scan)

    def poll_scan(self):
        try:
            ticket, actions, error = self.scan_results.get_nowait()
        except queue.Empty:
            self.root.after(SCAN_POLL_MS, self.poll_scan)
            return
        self.scan_btn.config(text=self.t("auto_detect"), state="normal")
        if error is not None:
            self.store.abort_scan(ticket)
            messagebox.showerror(self.t("title"), f"OCR failed:\n{error}", parent=self.root)
            return
        count = self.store.finish_scan(ticket, actions)
        self.set_status(self.t("detected", count=count))
        self.refresh_all()

    # ---------------------- export -----------------------------
    def copy(self):
        frame = self.controller.render(overlays=False)
        if frame is None:
            return
        ok = export.copy_to_clipboard(frame)
        self.set_status(self.t("copied_toast" if ok else "copy_failed"))

    def export(self, fmt: str):
        if self.store.is_empty:
            return
        ext = "jpg" if fmt == "jpg" else fmt
        output = filedialog.asksaveasfilename(defaultextension=f".{ext}", initialfile=f"privacyblur.{ext}",
                                              filetypes=[(fmt.upper(), f"*.{ext}")])
        if not output:
            return
        try:
            path = export.export_document(self.store, output, fmt)
        except (OSError, ValueError, RuntimeError) as e:
            messagebox.showerror(self.t("title"), f"Export failed:\n{e}", parent=self.root)
            return
        self.set_status(self.t("saved", path=path))

    def on_closing(self):
        self.settings.window_geometry = self.root.geometry()
        try:
            self.settings.save()
        except OSError as e:
            logger.warning("Could not save preferences: %s", e)
        self.root.destroy()


def run_gui(path: Optional[str] = None):
    root = tk.Tk()
    app = RedactorGUI(root)
    if path:
        app.open_file(path)
    root.protocol("WM_DELETE_WINDOW", app.on_closing)
    root.mainloop()
