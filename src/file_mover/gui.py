"""
File Mover - Tkinter GUI

A Tkinter-based GUI for the file mover application.
Scans and moves run through OperationRunner on a background thread;
progress, completion and log records reach the Tk thread through a
queue polled with root.after.
"""

import logging
import os
import queue
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Dict, Optional

from . import PRODUCT_NAME, PRODUCT_DESCRIPTION, __version__
from .collection import FileCollection
from .filters import DEFAULT_TOGGLES, VIDEO_EXTENSIONS, build_extension_filter
from .progress import QueueProgressSink
from .report import summarize_errors
from .runner import OperationKind, OperationRunner, RequestStatus
from .types import FileRecord, MoveBatchResult, RelocationOptions, ScanOptions, ScanResult
from .utils import format_size

logger = logging.getLogger(__name__)

CHECKED = "☑"
UNCHECKED = "☐"


class QueueHandler(logging.Handler):
    """Logging handler that puts log records into a queue for GUI consumption."""

    def __init__(self, log_queue: queue.Queue):
        super().__init__()
        self.log_queue = log_queue

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            self.log_queue.put(("log", msg))
        except Exception:
            self.handleError(record)


class FileMoverGUI:
    """Main GUI application for File Mover."""

    def __init__(self, root: tk.Tk):
        self.root = root
        self.root.title(f"{PRODUCT_NAME} v{__version__}")
        self.root.geometry("1000x760")
        self.root.minsize(800, 600)

        # Messages from worker threads: ("log", msg), ("progress", ...), ("done", ...)
        self.events: queue.Queue = queue.Queue()

        self.runner = OperationRunner()
        # Set from a STARTED request until its "done" event is handled here
        self._pending: Optional[OperationKind] = None
        self.files = FileCollection()
        self.files.subscribe(self._on_files_changed)

        # Treeview item id -> record
        self._rows: Dict[str, FileRecord] = {}
        self._scanned_root: Optional[str] = None

        # Form variables
        self.source_root = tk.StringVar()
        self.dest_root = tk.StringVar()
        self.ext_vars = {
            ext: tk.BooleanVar(value=DEFAULT_TOGGLES.get(ext, False))
            for ext in VIDEO_EXTENSIONS
        }
        self.custom_extensions = tk.StringVar()
        self.name_contains = tk.StringVar()
        self.keep_structure = tk.BooleanVar(value=False)
        self.auto_rename = tk.BooleanVar(value=True)

        self.status_var = tk.StringVar(value="Ready.")
        self.progress_text = tk.StringVar(value="")

        self._create_widgets()
        self._setup_logging()
        self._poll_events()

        self.source_root.trace_add("write", self._update_buttons)
        self.dest_root.trace_add("write", self._update_buttons)

    def _create_widgets(self) -> None:
        """Create all GUI widgets."""
        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.grid(row=0, column=0, sticky="nsew")
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        main_frame.columnconfigure(0, weight=1)

        ttk.Label(
            main_frame,
            text=PRODUCT_NAME,
            font=("Segoe UI", 16, "bold")
        ).grid(row=0, column=0, pady=(0, 2))
        ttk.Label(
            main_frame,
            text=PRODUCT_DESCRIPTION,
            font=("Segoe UI", 9)
        ).grid(row=1, column=0, pady=(0, 10))

        # === Folders ===
        folder_frame = ttk.LabelFrame(main_frame, text="Folders", padding="10")
        folder_frame.grid(row=2, column=0, sticky="ew", pady=5)
        folder_frame.columnconfigure(1, weight=1)

        ttk.Label(folder_frame, text="Source:").grid(row=0, column=0, sticky="w", pady=2)
        ttk.Entry(folder_frame, textvariable=self.source_root).grid(row=0, column=1, sticky="ew", padx=5)
        ttk.Button(folder_frame, text="Browse...", command=self._browse_source).grid(row=0, column=2)

        ttk.Label(folder_frame, text="Destination:").grid(row=1, column=0, sticky="w", pady=2)
        ttk.Entry(folder_frame, textvariable=self.dest_root).grid(row=1, column=1, sticky="ew", padx=5)
        ttk.Button(folder_frame, text="Browse...", command=self._browse_dest).grid(row=1, column=2)

        # === Filters ===
        filter_frame = ttk.LabelFrame(main_frame, text="Filters", padding="10")
        filter_frame.grid(row=3, column=0, sticky="ew", pady=5)
        filter_frame.columnconfigure(8, weight=1)

        for col, ext in enumerate(VIDEO_EXTENSIONS):
            ttk.Checkbutton(
                filter_frame, text=ext, variable=self.ext_vars[ext]
            ).grid(row=0, column=col, sticky="w", padx=(0, 8))

        ttk.Label(filter_frame, text="Custom extensions:").grid(row=1, column=0, columnspan=2, sticky="w", pady=2)
        ttk.Entry(filter_frame, textvariable=self.custom_extensions).grid(
            row=1, column=2, columnspan=7, sticky="ew", padx=5
        )

        ttk.Label(filter_frame, text="Name contains:").grid(row=2, column=0, columnspan=2, sticky="w", pady=2)
        ttk.Entry(filter_frame, textvariable=self.name_contains).grid(
            row=2, column=2, columnspan=7, sticky="ew", padx=5
        )

        # === Options ===
        options_frame = ttk.LabelFrame(main_frame, text="Move Options", padding="10")
        options_frame.grid(row=4, column=0, sticky="ew", pady=5)

        ttk.Checkbutton(
            options_frame,
            text="Keep folder structure (relative to source)",
            variable=self.keep_structure
        ).grid(row=0, column=0, sticky="w", padx=(0, 20))
        ttk.Checkbutton(
            options_frame,
            text="Auto-rename on conflict",
            variable=self.auto_rename
        ).grid(row=0, column=1, sticky="w")

        # === Buttons ===
        button_frame = ttk.Frame(main_frame)
        button_frame.grid(row=5, column=0, pady=8)

        self.search_btn = ttk.Button(button_frame, text="Search", command=self._search, width=14)
        self.search_btn.grid(row=0, column=0, padx=4)
        self.move_btn = ttk.Button(button_frame, text="Move Selected", command=self._move, width=14)
        self.move_btn.grid(row=0, column=1, padx=4)
        self.cancel_btn = ttk.Button(button_frame, text="Cancel", command=self._cancel, width=10)
        self.cancel_btn.grid(row=0, column=2, padx=4)
        ttk.Button(button_frame, text="Select All", command=self.files.select_all, width=12).grid(row=0, column=3, padx=4)
        ttk.Button(button_frame, text="Select None", command=self.files.select_none, width=12).grid(row=0, column=4, padx=4)
        self.reset_btn = ttk.Button(button_frame, text="Reset", command=self._reset, width=10)
        self.reset_btn.grid(row=0, column=5, padx=4)

        # === Results ===
        results_frame = ttk.LabelFrame(main_frame, text="Results (click a box to toggle)", padding="5")
        results_frame.grid(row=6, column=0, sticky="nsew", pady=5)
        results_frame.columnconfigure(0, weight=1)
        results_frame.rowconfigure(0, weight=1)
        main_frame.rowconfigure(6, weight=3)

        columns = ("selected", "with_folder", "name", "size", "path")
        self.tree = ttk.Treeview(results_frame, columns=columns, show="headings", height=12)
        headings = {
            "selected": ("Move", 50),
            "with_folder": ("With folder", 80),
            "name": ("Name", 220),
            "size": ("Size", 90),
            "path": ("Full path", 450),
        }
        for column, (label, width) in headings.items():
            self.tree.heading(column, text=label)
            anchor = "center" if column in ("selected", "with_folder") else "w"
            if column == "size":
                anchor = "e"
            self.tree.column(column, width=width, anchor=anchor, stretch=column == "path")

        tree_scroll = ttk.Scrollbar(results_frame, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=tree_scroll.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        tree_scroll.grid(row=0, column=1, sticky="ns")
        self.tree.bind("<Button-1>", self._on_tree_click)

        # === Progress ===
        progress_frame = ttk.Frame(main_frame)
        progress_frame.grid(row=7, column=0, sticky="ew", pady=(5, 0))
        progress_frame.columnconfigure(0, weight=1)
        self.progress_bar = ttk.Progressbar(progress_frame, mode="determinate", maximum=1)
        self.progress_bar.grid(row=0, column=0, sticky="ew")
        ttk.Label(progress_frame, textvariable=self.progress_text, width=24).grid(row=0, column=1, padx=5)

        # === Log ===
        log_frame = ttk.LabelFrame(main_frame, text="Log Output", padding="5")
        log_frame.grid(row=8, column=0, sticky="nsew", pady=5)
        log_frame.columnconfigure(0, weight=1)
        log_frame.rowconfigure(0, weight=1)
        main_frame.rowconfigure(8, weight=1)

        self.log_text = tk.Text(log_frame, height=6, wrap="word", state="disabled")
        log_scroll = ttk.Scrollbar(log_frame, orient="vertical", command=self.log_text.yview)
        self.log_text.configure(yscrollcommand=log_scroll.set)
        self.log_text.grid(row=0, column=0, sticky="nsew")
        log_scroll.grid(row=0, column=1, sticky="ns")

        # === Status bar ===
        ttk.Label(main_frame, textvariable=self.status_var, relief="sunken", anchor="w").grid(
            row=9, column=0, sticky="ew", pady=(5, 0)
        )

        self._update_buttons()

    def _setup_logging(self) -> None:
        """Configure logging to capture to GUI."""
        queue_handler = QueueHandler(self.events)
        queue_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))

        root_logger = logging.getLogger()
        root_logger.addHandler(queue_handler)
        root_logger.setLevel(logging.INFO)

    # --- event pump -------------------------------------------------------

    def _poll_events(self) -> None:
        """Drain worker messages on the Tk thread."""
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break

            kind = event[0]
            if kind == "log":
                self._append_log(event[1])
            elif kind == "progress":
                _, count, total, status_text = event
                self._show_progress(count, total, status_text)
            elif kind == "done":
                _, operation, result, error = event
                self._on_operation_done(operation, result, error)

        self.root.after(100, self._poll_events)

    def _completion(self, operation: OperationKind):
        """Build an on_complete callback that hands off to the Tk thread."""
        def on_complete(result, error):
            self.events.put(("done", operation, result, error))
        return on_complete

    def _append_log(self, message: str) -> None:
        self.log_text.configure(state="normal")
        self.log_text.insert("end", message + "\n")
        self.log_text.see("end")
        self.log_text.configure(state="disabled")

    def _show_progress(self, count: int, total: int, status_text: str) -> None:
        self.progress_bar.configure(maximum=max(total, 1), value=count)
        if status_text:
            self.progress_text.set(status_text)

    # --- state ------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._pending is not None or self.runner.is_busy

    def _update_buttons(self, *args) -> None:
        """Enable buttons according to runner state, inputs and selection."""
        idle = not self.busy
        source_ok = os.path.isdir(self.source_root.get()) if self.source_root.get() else False

        self.search_btn.configure(state="normal" if idle and source_ok else "disabled")
        self.move_btn.configure(state="normal" if idle and self.files.has_selection else "disabled")
        self.cancel_btn.configure(state="disabled" if idle else "normal")
        self.reset_btn.configure(state="normal" if idle else "disabled")

    def _on_files_changed(self, collection: FileCollection, event: str) -> None:
        if event in ("selection", "options"):
            for item_id, record in self._rows.items():
                self._render_row(item_id, record)
            if event == "selection":
                self.status_var.set(
                    f"Selected: {len(collection.selected())} of {len(collection)} file(s), "
                    f"{format_size(collection.selected_size())}"
                )
        else:
            self._rebuild_tree()
        self._update_buttons()

    def _rebuild_tree(self) -> None:
        self.tree.delete(*self.tree.get_children())
        self._rows.clear()
        for record in self.files:
            item_id = self.tree.insert("", "end", values=self._row_values(record))
            self._rows[item_id] = record

    def _row_values(self, record: FileRecord):
        return (
            CHECKED if record.selected else UNCHECKED,
            CHECKED if record.move_with_parent_folder else UNCHECKED,
            record.name,
            record.size_human,
            record.full_path,
        )

    def _render_row(self, item_id: str, record: FileRecord) -> None:
        self.tree.item(item_id, values=self._row_values(record))

    def _on_tree_click(self, event) -> Optional[str]:
        if self.busy:
            return None
        if self.tree.identify_region(event.x, event.y) != "cell":
            return None

        item_id = self.tree.identify_row(event.y)
        record = self._rows.get(item_id)
        if record is None:
            return None

        column = self.tree.identify_column(event.x)
        if column == "#1":
            self.files.set_selected(record, not record.selected)
            return "break"
        if column == "#2":
            self.files.set_move_with_parent_folder(record, not record.move_with_parent_folder)
            return "break"
        return None

    # --- pickers ----------------------------------------------------------

    def _browse_source(self) -> None:
        path = filedialog.askdirectory(title="Select SOURCE folder (recursive search)", mustexist=True)
        if path:
            self.source_root.set(path)
            self.status_var.set("Source set.")

    def _browse_dest(self) -> None:
        path = filedialog.askdirectory(title="Select DESTINATION folder (move selected here)")
        if path:
            self.dest_root.set(path)
            self.status_var.set("Destination set.")

    # --- commands ---------------------------------------------------------

    def _search(self) -> None:
        toggles = {ext: var.get() for ext, var in self.ext_vars.items()}
        options = ScanOptions(
            source_root=self.source_root.get(),
            extension_filter=build_extension_filter(toggles, self.custom_extensions.get()),
            name_contains=self.name_contains.get()
        )

        status = self.runner.start_scan(
            options,
            QueueProgressSink(self.events),
            self._completion(OperationKind.SCAN)
        )
        if status == RequestStatus.INVALID_SOURCE:
            messagebox.showwarning("Missing Source", "Set a valid Source folder first.")
            return
        if status == RequestStatus.REJECTED_BUSY:
            messagebox.showwarning("Busy", "An operation is already running.")
            return

        self._pending = OperationKind.SCAN
        self._scanned_root = options.source_root
        self.files.reset()
        self.progress_bar.configure(maximum=1, value=0)
        self.progress_text.set("")
        self.status_var.set("Searching...")
        self._update_buttons()

    def _move(self) -> None:
        selected = self.files.selected()
        options = RelocationOptions(
            destination_root=self.dest_root.get(),
            source_root=self._scanned_root or self.source_root.get(),
            keep_relative_structure=self.keep_structure.get(),
            auto_rename_on_conflict=self.auto_rename.get()
        )

        status = self.runner.start_move(
            selected,
            options,
            QueueProgressSink(self.events),
            self._completion(OperationKind.MOVE)
        )
        if status == RequestStatus.INVALID_DESTINATION:
            messagebox.showwarning("Missing Destination", "Set a valid Destination folder first.")
            return
        if status == RequestStatus.NOTHING_SELECTED:
            messagebox.showinfo("Nothing to move", "No files selected.")
            return
        if status == RequestStatus.REJECTED_BUSY:
            messagebox.showwarning("Busy", "An operation is already running.")
            return

        self._pending = OperationKind.MOVE
        self.progress_bar.configure(maximum=len(selected), value=0)
        self.progress_text.set("")
        self.status_var.set("Moving selected files...")
        self._update_buttons()

    def _cancel(self) -> None:
        if self.runner.cancel():
            self.status_var.set("Cancelling after the current file...")

    def _reset(self) -> None:
        """Clear results, filters and progress."""
        if self.busy:
            return
        self.files.reset()
        self._scanned_root = None
        for ext, var in self.ext_vars.items():
            var.set(DEFAULT_TOGGLES.get(ext, False))
        self.custom_extensions.set("")
        self.name_contains.set("")
        self.progress_bar.configure(maximum=1, value=0)
        self.progress_text.set("")
        self.status_var.set("Ready.")

    def _on_operation_done(self, operation: OperationKind, result, error) -> None:
        # The worker puts "done" just before releasing the runner
        self.runner.wait()
        try:
            if error is not None:
                self.status_var.set(f"{operation.value.capitalize()} failed.")
                messagebox.showerror("Error", f"Operation failed:\n\n{error}")
            elif operation == OperationKind.SCAN:
                self._scan_done(result)
            else:
                self._move_done(result)
        finally:
            self._pending = None
            self._update_buttons()

    def _scan_done(self, result: ScanResult) -> None:
        self.files.load(result.records)
        suffix = " (cancelled)" if result.cancelled else ""
        self.status_var.set(
            f"Search done{suffix}. Found: {len(self.files)} file(s). (Select what you want to move)"
        )

    def _move_done(self, batch: MoveBatchResult) -> None:
        self.files.retire(batch.moved_paths)

        if batch.cancelled:
            self.status_var.set(f"Move cancelled. Moved {len(batch.moved_paths)} file(s).")
        elif batch.errors:
            self.status_var.set(f"Move completed with {len(batch.errors)} problem(s).")
        else:
            self.status_var.set("Move completed.")

        if batch.errors:
            messagebox.showwarning("Move errors", summarize_errors(batch.errors))


def main() -> None:
    """Main entry point for GUI."""
    root = tk.Tk()

    try:
        root.tk.call("source", "azure.tcl")
        root.tk.call("set_theme", "light")
    except tk.TclError:
        # Azure theme not available, use default
        pass

    FileMoverGUI(root)
    root.mainloop()


if __name__ == "__main__":
    main()
