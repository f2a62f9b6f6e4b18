"""
Gemini Settings Dialog
======================

Modal dialog to configure the Gemini API key and model. Saves values back
to the session's EngineConfig and persists them via config_manager.
"""

import threading

import customtkinter as ctk

from metascribe.core import config
from metascribe.integrations.google_ai_client import GoogleAIClient
from metascribe.utils.config_manager import save_config


class SettingsDialog(ctk.CTkToplevel):
    def __init__(self, parent, session, on_saved=None, title: str = "Gemini Settings"):
        super().__init__(parent)
        self.parent = parent
        self.session = session
        self.on_saved = on_saved
        self.title(title)
        self.geometry("540x200")
        self.transient(parent)
        self.grab_set()

        self.grid_columnconfigure(0, weight=1)

        frame = ctk.CTkFrame(self)
        frame.grid(row=0, column=0, padx=12, pady=12, sticky="nsew")
        frame.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(frame, text="API Key:").grid(row=0, column=0, sticky="e", padx=5, pady=5)
        self.api_key_var = ctk.StringVar(value=session.engine.api_key)
        ctk.CTkEntry(frame, textvariable=self.api_key_var, show='*', width=380).grid(row=0, column=1, sticky="w", pady=5)

        ctk.CTkLabel(frame, text="Model:").grid(row=1, column=0, sticky="e", padx=5, pady=5)
        self.model_var = ctk.StringVar(value=session.engine.model_id or config.DEFAULT_MODEL_ID)
        self.model_menu = ctk.CTkComboBox(frame, variable=self.model_var, values=[self.model_var.get()], width=380)
        self.model_menu.grid(row=1, column=1, sticky="w", pady=5)

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.grid(row=1, column=0, pady=8)
        ctk.CTkButton(btn_frame, text="Test Connection", command=self.test_connection, width=140).pack(side="left", padx=8)
        ctk.CTkButton(btn_frame, text="Save", command=self.save, width=120).pack(side="left", padx=8)
        ctk.CTkButton(btn_frame, text="Cancel", command=self.close, width=100, fg_color="gray").pack(side="left", padx=8)

        self.status_label = ctk.CTkLabel(self, text="Not tested", text_color="gray")
        self.status_label.grid(row=2, column=0, sticky="w", padx=12, pady=6)

        self.protocol("WM_DELETE_WINDOW", self.close)

    def save(self):
        self.session.engine.api_key = self.api_key_var.get().strip()
        self.session.engine.model_id = self.model_var.get().strip() or config.DEFAULT_MODEL_ID
        save_config(self.session)
        if self.on_saved:
            self.on_saved()
        self.close()

    def test_connection(self):
        key = self.api_key_var.get().strip()
        self.status_label.configure(text="Testing Gemini connection...", text_color="gray")

        def worker():
            client = GoogleAIClient(api_key=key)
            try:
                models = client.list_models()
            finally:
                client.close()
            self.after(0, lambda: self._show_result(models))

        threading.Thread(target=worker, daemon=True).start()

    def _show_result(self, models):
        if not self.winfo_exists():
            return
        if models:
            ids = [m["id"] for m in models]
            self.model_menu.configure(values=ids)
            self.status_label.configure(text=f"Connection OK ({len(ids)} models)", text_color="green")
        else:
            self.status_label.configure(text="Connection failed", text_color="red")

    def close(self):
        self.grab_release()
        self.destroy()
