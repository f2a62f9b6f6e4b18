"""
Results Table
=============

Scrollable table of generated metadata: preview, title, description and
tags for each image. Failed images (error records) are shown in red.
"""

import logging
import os

import customtkinter as ctk
from PIL import Image, UnidentifiedImageError

from metascribe.core import config


class ResultsView(ctk.CTkScrollableFrame):
    """
    Table of ``ImageMetadata`` rows.

    Preview images are loaded lazily per row; a file that cannot be opened
    just gets an empty preview cell.
    """

    def __init__(self, parent):
        super().__init__(parent, label_text="Preview | Title | Description | Tags")
        self.logger = logging.getLogger(__name__)
        self.grid_columnconfigure(2, weight=1)
        # Keep CTkImage references alive while rows are displayed
        self._images = []

    def clear(self):
        for widget in self.winfo_children():
            widget.destroy()
        self._images = []

    def show(self, records):
        self.clear()
        for row, record in enumerate(records):
            self.add_row(row, record)

    def add_row(self, row, record):
        preview = self._load_preview(record.source_path)
        ctk.CTkLabel(self, text="" if preview else "—", image=preview, width=config.PREVIEW_SIZE[0]).grid(
            row=row, column=0, padx=5, pady=4, sticky="w"
        )

        color = "red" if record.is_error else None
        title = ctk.CTkLabel(self, text=record.title, width=180, anchor="w", wraplength=180, justify="left")
        if color:
            title.configure(text_color=color)
        title.grid(row=row, column=1, padx=5, pady=4, sticky="w")

        ctk.CTkLabel(self, text=record.description, anchor="w", wraplength=420, justify="left").grid(
            row=row, column=2, padx=5, pady=4, sticky="ew"
        )
        ctk.CTkLabel(self, text=", ".join(record.tags), anchor="w", wraplength=220, justify="left").grid(
            row=row, column=3, padx=5, pady=4, sticky="w"
        )

    def _load_preview(self, path):
        if not path or not os.path.isfile(path):
            return None
        try:
            with Image.open(path) as img:
                img.load()
                image = ctk.CTkImage(light_image=img.copy(), size=config.PREVIEW_SIZE)
        except (OSError, UnidentifiedImageError) as e:
            self.logger.debug(f"No preview for {path}: {e}")
            return None
        self._images.append(image)
        return image
