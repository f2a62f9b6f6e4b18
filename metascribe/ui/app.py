"""
Metascribe Main Application Window
==================================

Root CustomTkinter window. The user selects images, the batch runs on a
background ``ProcessingJob``, results appear in a table and can be exported
to CSV.

Key Responsibilities:
---------------------
- File selection and export dialogs (tkinter.filedialog).
- Starting/aborting the processing job and marshalling its callbacks onto
  the Tk thread with ``after``.
- Error reporting through a transient toast; Tk callback exceptions are
  logged and shown instead of crashing the event loop.
- Saving configuration and releasing the HTTP session on close.

The pipeline objects are passed in by the entry point; the window never
constructs them itself except when the settings dialog changes the engine.
"""

import logging
from tkinter import filedialog
from typing import List

import customtkinter as ctk

from metascribe.core import config
from metascribe.core.exceptions import ExportCancelled, MetascribeError
from metascribe.core.processing import ProcessingJob
from metascribe.core.services import Services, create_services
from metascribe.core.session import Session
from metascribe.ui.results_view import ResultsView
from metascribe.ui.settings_dialog import SettingsDialog
from metascribe.ui.toast import Toast
from metascribe.utils.config_manager import save_config


class App(ctk.CTk):
    """
    Main application window.

    Attributes:
        session: Configuration and results of the current run.
        services: Client, orchestrator and CSV exporter.
        job: The running ProcessingJob, if any.
    """

    def __init__(self, session: Session, services: Services):
        super().__init__()

        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing main application window")

        self.session = session
        self.services = services
        self.job = None

        self.title(f"{config.APP_NAME} - Image Metadata Generator")
        self.geometry(config.GEOMETRY)
        ctk.set_appearance_mode("Dark")
        ctk.set_default_color_theme("blue")

        self.protocol("WM_DELETE_WINDOW", self.on_close)

        self.grid_rowconfigure(3, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._build_header()
        self._build_progress()
        self._build_results()
        self.toast = Toast(self)

        if not self.services.client.is_available():
            self.after(500, lambda: self.toast.show(
                f"No API key configured. Open Settings or set {config.API_KEY_ENV_VAR}.", "info"
            ))

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build_header(self):
        title = ctk.CTkLabel(self, text="Image Metadata Generator", font=("Roboto", 24, "bold"))
        title.grid(row=0, column=0, pady=(20, 10))

        controls = ctk.CTkFrame(self, fg_color="transparent")
        controls.grid(row=1, column=0, pady=10)

        self.btn_select = ctk.CTkButton(
            controls, text="Select Images", width=200, height=44,
            font=("Roboto", 16, "bold"), command=self.select_images
        )
        self.btn_select.pack(side="left", padx=10)

        self.btn_abort = ctk.CTkButton(
            controls, text="ABORT", fg_color="red", width=120, height=44,
            state="disabled", command=self.abort_processing
        )
        self.btn_abort.pack(side="left", padx=10)

        self.btn_export = ctk.CTkButton(
            controls, text="Export CSV", width=160, height=44,
            state="disabled", command=self.export_csv
        )
        self.btn_export.pack(side="left", padx=10)

        ctk.CTkButton(
            controls, text="Settings", width=120, height=44, fg_color="gray",
            command=self.open_settings
        ).pack(side="left", padx=10)

    def _build_progress(self):
        frame = ctk.CTkFrame(self)
        frame.grid(row=2, column=0, sticky="ew", padx=20, pady=10)

        self.lbl_status = ctk.CTkLabel(frame, text="Select images to begin.", font=("Roboto", 14))
        self.lbl_status.pack(pady=(10, 5))

        self.progress_bar = ctk.CTkProgressBar(frame, height=16)
        self.progress_bar.set(0)
        self.progress_bar.pack(fill="x", padx=20, pady=(5, 10))

    def _build_results(self):
        self.results_view = ResultsView(self)
        self.results_view.grid(row=3, column=0, sticky="nsew", padx=20, pady=(0, 20))

    # ------------------------------------------------------------------
    # Selection and processing
    # ------------------------------------------------------------------

    def select_images(self) -> List[str]:
        patterns = " ".join(f"*{ext}" for ext in self.session.engine.supported_extensions)
        paths = filedialog.askopenfilenames(
            parent=self,
            title="Select Images",
            filetypes=[("Images", patterns), ("All files", "*.*")],
        )
        paths = list(paths or [])
        if paths:
            self.logger.info(f"User selected {len(paths)} files")
            self.start_processing(paths)
        return paths

    def start_processing(self, paths: List[str]):
        if self.job is not None and self.job.is_running():
            self.toast.show("A batch is already running.", "info")
            return

        self.session.selected_paths = list(paths)
        self.session.reset_results()
        self.session.is_processing = True
        self.results_view.clear()
        self.progress_bar.set(0)
        self.lbl_status.configure(text=f"Processing {len(paths)} images...")
        self.btn_select.configure(state="disabled")
        self.btn_export.configure(state="disabled")
        self.btn_abort.configure(state="normal")

        self.job = ProcessingJob(
            self.services.processor,
            paths,
            on_progress=self.safe_update_progress,
            on_complete=lambda results: self.after(0, lambda: self._on_complete(results)),
            on_error=lambda error: self.after(0, lambda: self._on_error(error)),
            include_errors=self.session.engine.include_failed_rows,
        )
        self.job.start()

    def abort_processing(self):
        if self.job is not None:
            self.job.abort()
        self.btn_abort.configure(state="disabled")
        self.lbl_status.configure(text="Stopping after the current group...")

    def safe_update_progress(self, current: int, total: int):
        def _update():
            pct = current / total if total else 0
            self.progress_bar.set(pct)
            self.lbl_status.configure(text=f"{current} of {total} images processed")
        self.after(0, _update)

    def _finish_run(self):
        self.session.is_processing = False
        self.btn_select.configure(state="normal")
        self.btn_abort.configure(state="disabled")

    def _on_complete(self, results):
        self._finish_run()
        self.session.results = list(results)
        self.results_view.show(self.session.results)

        ok = len(self.session.successful_results)
        failed = self.session.failed_count
        self.lbl_status.configure(text=f"Completed: {ok} succeeded, {failed} failed.")
        self.progress_bar.set(1)
        if self.session.results:
            self.btn_export.configure(state="normal")
        if failed:
            self.toast.show(f"{failed} image(s) could not be processed.", "error")

    def _on_error(self, error: BaseException):
        self._finish_run()
        self.lbl_status.configure(text="Processing failed.")
        self.toast.show(f"Error processing images: {error}", "error")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _ask_destination(self, default_filename: str) -> str:
        return filedialog.asksaveasfilename(
            parent=self,
            title="Export CSV",
            initialfile=default_filename,
            defaultextension=".csv",
            filetypes=[("CSV Files", "*.csv")],
        )

    def export_csv(self):
        try:
            path = self.services.exporter.export_with_dialog(self.session.results, self._ask_destination)
        except ExportCancelled:
            return
        except MetascribeError as e:
            self.toast.show(f"Error exporting CSV: {e}", "error")
            return
        self.toast.show(f"Metadata exported to {path}", "success")

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def open_settings(self):
        SettingsDialog(self, self.session, on_saved=self._rebuild_services)

    def _rebuild_services(self):
        self.logger.info("Engine settings changed - rebuilding services")
        old = self.services
        self.services = create_services(self.session.engine)
        # A running job keeps the old processor until it finishes
        if self.job is None or not self.job.is_running():
            old.close()

    # ------------------------------------------------------------------
    # Error handling and shutdown
    # ------------------------------------------------------------------

    def report_callback_exception(self, exc, val, tb):
        """Log exceptions raised in Tk callbacks and show them in the toast."""
        self.logger.error(f"Unhandled UI error: {val}", exc_info=(exc, val, tb))
        try:
            self.toast.show(f"Application error: {val}", "error")
        except Exception:
            self.logger.exception("Failed to display error toast")

    def on_close(self):
        self.logger.info("Application close requested - starting shutdown sequence")
        if self.job is not None and self.job.is_running():
            self.job.abort()

        save_config(self.session)
        self.services.close()

        self.logger.info("Destroying window and exiting")
        self.destroy()
