"""
Transient Notification
======================

A small banner placed over the bottom of the main window that hides itself
after a few seconds. Used for pipeline and export errors and for export
success messages.
"""

import customtkinter as ctk

from metascribe.core import config

COLORS = {
    "error": ("#c0392b", "#922b21"),
    "success": ("#1e8449", "#196f3d"),
    "info": ("#2e86c1", "#21618c"),
}


class Toast(ctk.CTkFrame):
    def __init__(self, parent, duration_ms: int = config.TOAST_DURATION_MS):
        super().__init__(parent, corner_radius=8)
        self.duration_ms = duration_ms
        self._hide_job = None

        self.label = ctk.CTkLabel(self, text="", text_color="white", wraplength=600, justify="left")
        self.label.pack(side="left", padx=(15, 5), pady=10)

        ctk.CTkButton(self, text="✕", width=28, fg_color="transparent", command=self.hide).pack(side="right", padx=5)

    def show(self, message: str, kind: str = "error"):
        self.configure(fg_color=COLORS.get(kind, COLORS["info"]))
        self.label.configure(text=message)
        self.place(relx=0.5, rely=0.97, anchor="s")
        self.lift()

        if self._hide_job is not None:
            self.after_cancel(self._hide_job)
        self._hide_job = self.after(self.duration_ms, self.hide)

    def hide(self):
        self._hide_job = None
        self.place_forget()
