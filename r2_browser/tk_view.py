from __future__ import annotations
"""Tkinter-based UI for the bucket browser application."""
from dataclasses import replace
import tkinter as tk
from tkinter import filedialog, messagebox, simpledialog, ttk

from .models import BucketConfig, Entry
from .presenter import BrowserPresenter
from .ui_utils import display_path, format_last_modified, format_size


def _parse_delete_concurrency(text: str) -> int | None:
    try:
        value = int(text.strip())
    except ValueError:
        return None
    return value if value > 0 else None


class BucketBrowserApp:
    """Tkinter view that delegates bucket operations to :class:`BrowserPresenter`."""

    def __init__(self, root: tk.Tk, presenter: BrowserPresenter | None = None):
        self.root = root
        self.root.title("R2 Bucket Browser")
        self.root.geometry("820x640")
        self.root.minsize(600, 420)

        self.presenter = presenter or BrowserPresenter(dispatch=lambda func: self.root.after(0, func))
        self._entries: dict[str, Entry] = {}
        self._operation_in_progress = False
        self._file_menu: tk.Menu | None = None
        self._settings_window: tk.Toplevel | None = None
        self._entry_menu_labels = ("Copy Download Link", "Delete")

        self._create_menu()
        self._create_widgets()
        self._refresh_controls()
        if self.presenter.is_connected:
            self.refresh()

    def _create_menu(self) -> None:
        menubar = tk.Menu(self.root)

        connection_menu = tk.Menu(menubar, tearoff=0)
        connection_menu.add_command(label="Configure...", command=self.configure_connection)
        connection_menu.add_command(label="Disconnect", command=self.disconnect)
        menubar.add_cascade(label="Connection", menu=connection_menu)

        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Upload...", command=self.upload_file)
        file_menu.add_command(label="New Folder...", command=self.create_folder)
        file_menu.add_separator()
        file_menu.add_command(label=self._entry_menu_labels[0], command=self.copy_download_link)
        file_menu.add_command(label=self._entry_menu_labels[1], command=self.delete_selected)
        file_menu.add_separator()
        file_menu.add_command(label="Refresh", command=self.refresh)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.root.destroy)
        menubar.add_cascade(label="File", menu=file_menu)
        self._file_menu = file_menu

        options_menu = tk.Menu(menubar, tearoff=0)
        options_menu.add_command(label="Settings...", command=self.open_settings_dialog)
        menubar.add_cascade(label="Options", menu=options_menu)

        help_menu = tk.Menu(menubar, tearoff=0)
        help_menu.add_command(label="About", command=self.show_about_dialog)
        menubar.add_cascade(label="Help", menu=help_menu)

        self.root.config(menu=menubar)

    def _create_widgets(self) -> None:
        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        main_frame.columnconfigure(0, weight=1)
        main_frame.rowconfigure(1, weight=1)

        path_frame = ttk.Frame(main_frame)
        path_frame.grid(row=0, column=0, sticky=(tk.W, tk.E))
        path_frame.columnconfigure(1, weight=1)

        self.up_button = ttk.Button(path_frame, text="Up", command=self.go_up)
        self.up_button.grid(row=0, column=0, pady=2, padx=(0, 5))
        self.path_var = tk.StringVar(value="Not connected")
        ttk.Label(path_frame, textvariable=self.path_var).grid(row=0, column=1, sticky=(tk.W, tk.E))
        self.new_folder_button = ttk.Button(path_frame, text="New Folder", command=self.create_folder)
        self.new_folder_button.grid(row=0, column=2, pady=2, padx=(5, 0))
        self.upload_button = ttk.Button(path_frame, text="Upload File", command=self.upload_file)
        self.upload_button.grid(row=0, column=3, pady=2, padx=(5, 0))

        tree_frame = ttk.Frame(main_frame)
        tree_frame.grid(row=1, column=0, sticky=(tk.W, tk.E, tk.N, tk.S), pady=(10, 0))
        tree_frame.columnconfigure(0, weight=1)
        tree_frame.rowconfigure(0, weight=1)

        self.entries_tree = ttk.Treeview(
            tree_frame,
            columns=("size", "modified"),
            show="tree headings",
            selectmode="browse",
        )
        self.entries_tree.heading("#0", text="Name", anchor=tk.W)
        self.entries_tree.heading("size", text="Size", anchor=tk.E)
        self.entries_tree.heading("modified", text="Last Modified", anchor=tk.W)
        self.entries_tree.column("#0", width=380)
        self.entries_tree.column("size", width=100, anchor=tk.E)
        self.entries_tree.column("modified", width=220)
        self.entries_tree.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

        tree_scroll_y = ttk.Scrollbar(tree_frame, orient="vertical", command=self.entries_tree.yview)
        tree_scroll_y.grid(row=0, column=1, sticky=(tk.N, tk.S))
        self.entries_tree.configure(yscrollcommand=tree_scroll_y.set)
        self.entries_tree.bind("<Double-1>", self._handle_tree_double_click)
        self.entries_tree.bind("<<TreeviewSelect>>", lambda _: self._refresh_controls())
        self.entries_tree.bind("<Delete>", lambda _: self.delete_selected())

        self.progress = ttk.Progressbar(main_frame, mode="indeterminate")
        self.progress.grid(row=2, column=0, sticky=(tk.W, tk.E), pady=5)

        self.status_var = tk.StringVar(value="Ready")
        ttk.Label(main_frame, textvariable=self.status_var, anchor=tk.W).grid(
            row=3, column=0, sticky=(tk.W, tk.E)
        )

    def configure_connection(self) -> None:
        dialog = ConnectionDialog(self.root, title="Bucket Connection", config=self.presenter.config)
        config = dialog.show()
        if config is None:
            return
        self._start_operation(f"Connecting to {config.bucket_name}...")
        self.presenter.connect(
            config=config,
            on_success=lambda ok: self._handle_connect_result(config, ok),
            on_error=lambda message: self._show_error("Connection Error", message),
            on_done=self._end_operation,
        )

    def _handle_connect_result(self, config: BucketConfig, connected: bool) -> None:
        if not connected:
            self._show_error(
                "Connection Error",
                f"Unable to list bucket '{config.bucket_name}'. Check the endpoint and keys.",
            )
            return
        self._set_status(f"Connected to {config.bucket_name}")
        self.root.after(0, self.refresh)

    def disconnect(self) -> None:
        if not self.presenter.is_connected:
            return
        if not messagebox.askyesno("Disconnect", "Forget the stored bucket credentials?"):
            return
        self.presenter.disconnect()
        self._clear_tree()
        self._set_status("Disconnected")
        self._refresh_controls()

    def refresh(self) -> None:
        if not self.presenter.is_connected or self._operation_in_progress:
            return
        self._start_operation("Loading...")
        self.presenter.list_entries(
            on_success=self._populate_tree,
            on_error=lambda message: self._show_error("Listing Error", message),
            on_done=self._end_operation,
        )

    def go_up(self) -> None:
        if not self.presenter.current_prefix or self._operation_in_progress:
            return
        self.presenter.go_up()
        self.refresh()

    def upload_file(self) -> None:
        if not self.presenter.is_connected or self._operation_in_progress:
            return
        source_path = filedialog.askopenfilename(parent=self.root, title="Select File to Upload")
        if not source_path:
            return
        self._start_operation(f"Uploading {source_path}...")
        self.presenter.upload_file(
            source_path=source_path,
            on_success=self._handle_upload_success,
            on_error=lambda message: self._show_error("Upload Error", message),
            on_done=self._end_operation,
        )

    def _handle_upload_success(self, key: str) -> None:
        self._set_status(f"Uploaded {key}")
        self.root.after(0, self.refresh)

    def create_folder(self) -> None:
        if not self.presenter.is_connected or self._operation_in_progress:
            return
        name = simpledialog.askstring("New Folder", "Folder name:", parent=self.root)
        if not name or not name.strip():
            return
        self._start_operation(f"Creating folder {name}...")
        self.presenter.create_folder(
            name=name,
            on_success=self._handle_folder_created,
            on_error=lambda message: self._show_error("Folder Error", message),
            on_done=self._end_operation,
        )

    def _handle_folder_created(self, key: str) -> None:
        self._set_status(f"Created {key}")
        self.root.after(0, self.refresh)

    def delete_selected(self) -> None:
        entry = self._get_selected_entry()
        if entry is None or self._operation_in_progress:
            return
        if entry.is_folder:
            prompt = f"Delete folder '{entry.name}' and everything inside it?"
        else:
            prompt = f"Delete '{entry.name}'?"
        if not messagebox.askyesno("Confirm Delete", prompt, parent=self.root):
            return
        self._start_operation(f"Deleting {entry.name}...")
        self.presenter.delete_entry(
            entry=entry,
            on_success=lambda _result: self._handle_delete_success(entry),
            on_error=lambda message: self._show_error("Delete Error", message),
            on_done=self._end_operation,
        )

    def _handle_delete_success(self, entry: Entry) -> None:
        self._set_status(f"Deleted {entry.name}")
        self.root.after(0, self.refresh)

    def copy_download_link(self) -> None:
        entry = self._get_selected_entry()
        if entry is None or entry.is_folder or self._operation_in_progress:
            return
        self.presenter.download_url(
            entry=entry,
            on_success=lambda url: self._handle_download_url(entry, url),
            on_error=lambda message: self._show_error("Download Link Error", message),
        )

    def _handle_download_url(self, entry: Entry, url: str) -> None:
        self.root.clipboard_clear()
        self.root.clipboard_append(url)
        self._set_status(f"Download link for {entry.name} copied (valid for one hour)")

    def open_settings_dialog(self) -> None:
        if self._settings_window and self._settings_window.winfo_exists():
            self._settings_window.lift()
            return

        window = tk.Toplevel(self.root)
        window.title("Settings")
        window.resizable(False, False)
        window.transient(self.root)
        window.grab_set()

        frame = ttk.Frame(window, padding=20)
        frame.pack(fill=tk.BOTH, expand=True)

        current = self.presenter.settings
        concurrency_var = tk.StringVar(value=str(current.delete_concurrency))
        remember_var = tk.BooleanVar(value=current.remember_last_prefix)

        ttk.Label(frame, text="Parallel deletes:").grid(row=0, column=0, sticky=tk.W, pady=(0, 10))
        entry = ttk.Entry(frame, textvariable=concurrency_var, width=10, justify="right")
        entry.grid(row=0, column=1, sticky=tk.W, pady=(0, 10), padx=(5, 0))
        ttk.Checkbutton(frame, text="Reopen the last folder on start", variable=remember_var).grid(
            row=1, column=0, columnspan=2, sticky=tk.W, pady=(0, 10)
        )

        buttons = ttk.Frame(frame)
        buttons.grid(row=2, column=0, columnspan=2, pady=(5, 0), sticky=tk.E)

        def save_settings() -> None:
            concurrency = _parse_delete_concurrency(concurrency_var.get())
            if concurrency is None:
                messagebox.showerror("Error", "Parallel deletes must be a whole number greater than zero", parent=window)
                return
            self.presenter.save_settings(
                replace(
                    current,
                    delete_concurrency=concurrency,
                    remember_last_prefix=remember_var.get(),
                )
            )
            self._set_status("Settings saved")
            self._close_settings_window()

        ttk.Button(buttons, text="Save", command=save_settings).grid(row=0, column=0, padx=(0, 5))
        ttk.Button(buttons, text="Cancel", command=self._close_settings_window).grid(row=0, column=1)

        entry.focus()
        self._settings_window = window
        window.protocol("WM_DELETE_WINDOW", self._close_settings_window)

    def _close_settings_window(self) -> None:
        if self._settings_window and self._settings_window.winfo_exists():
            self._settings_window.destroy()
        self._settings_window = None

    def show_about_dialog(self) -> None:
        info = self.presenter.package_info
        title = f"{info.name} {info.version}".strip()
        lines = [title, "", info.summary]
        if info.homepage:
            lines.extend(["", info.homepage])
        messagebox.showinfo("About", "\n".join(lines), parent=self.root)

    def _handle_tree_double_click(self, event) -> None:
        item_id = self.entries_tree.identify_row(event.y)
        entry = self._entries.get(item_id)
        if entry is None or self._operation_in_progress:
            return
        if entry.is_folder:
            self.presenter.open_folder(entry.name)
            self.refresh()
        else:
            self.copy_download_link()

    def _populate_tree(self, entries: list[Entry]) -> None:
        self._clear_tree()
        for entry in entries:
            if entry.is_folder:
                item_id = self.entries_tree.insert("", tk.END, text=f"{entry.name}/", values=("", ""))
            else:
                item_id = self.entries_tree.insert(
                    "",
                    tk.END,
                    text=entry.name,
                    values=(format_size(entry.size), format_last_modified(entry.last_modified)),
                )
            self._entries[item_id] = entry
        self._set_status(f"{len(entries)} item(s)")
        self._refresh_controls()

    def _clear_tree(self) -> None:
        for item_id in self.entries_tree.get_children(""):
            self.entries_tree.delete(item_id)
        self._entries.clear()

    def _get_selected_entry(self) -> Entry | None:
        selection = self.entries_tree.selection()
        if not selection:
            return None
        return self._entries.get(selection[0])

    def _refresh_controls(self) -> None:
        connected = self.presenter.is_connected
        config = self.presenter.config
        if connected and config is not None:
            self.path_var.set(display_path(config.bucket_name, self.presenter.current_prefix))
        else:
            self.path_var.set("Not connected")

        state = "normal" if connected and not self._operation_in_progress else "disabled"
        self.upload_button.configure(state=state)
        self.new_folder_button.configure(state=state)
        up_enabled = state == "normal" and bool(self.presenter.current_prefix)
        self.up_button.configure(state="normal" if up_enabled else "disabled")

        entry = self._get_selected_entry()
        if self._file_menu is not None:
            selectable = entry is not None and not self._operation_in_progress
            link_state = "normal" if selectable and not entry.is_folder else "disabled"
            delete_state = "normal" if selectable else "disabled"
            self._file_menu.entryconfigure(self._entry_menu_labels[0], state=link_state)
            self._file_menu.entryconfigure(self._entry_menu_labels[1], state=delete_state)

    def _start_operation(self, message: str) -> None:
        self._operation_in_progress = True
        self.progress.start(10)
        self._set_status(message)
        self._refresh_controls()

    def _end_operation(self) -> None:
        self._operation_in_progress = False
        self.progress.stop()
        self._refresh_controls()

    def _set_status(self, message: str) -> None:
        self.status_var.set(message)

    def _show_error(self, title: str, message: str) -> None:
        self._set_status(message)
        messagebox.showerror(title, message, parent=self.root)


class ConnectionDialog:
    """Modal dialog for entering bucket credentials."""

    def __init__(self, parent: tk.Tk, *, title: str, config: BucketConfig | None = None):
        self.parent = parent
        self.result: BucketConfig | None = None

        self.top = tk.Toplevel(parent)
        self.top.title(title)
        self.top.transient(parent)
        self.top.resizable(False, False)
        self.top.grab_set()

        content = ttk.Frame(self.top, padding="10")
        content.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

        self.endpoint_var = tk.StringVar(value=config.endpoint_url if config else "")
        self.bucket_var = tk.StringVar(value=config.bucket_name if config else "")
        self.region_var = tk.StringVar(value=config.region if config else "auto")
        self.access_key_var = tk.StringVar(value=config.access_key_id if config else "")
        self.secret_key_var = tk.StringVar(value=config.secret_access_key if config else "")

        rows = (
            ("Endpoint URL:", self.endpoint_var, None),
            ("Bucket Name:", self.bucket_var, None),
            ("Region:", self.region_var, None),
            ("Access Key ID:", self.access_key_var, None),
            ("Secret Access Key:", self.secret_key_var, "*"),
        )
        for row, (label, variable, show) in enumerate(rows):
            ttk.Label(content, text=label).grid(row=row, column=0, sticky=tk.W, pady=2)
            entry = ttk.Entry(content, textvariable=variable, width=48)
            if show:
                entry.configure(show=show)
            entry.grid(row=row, column=1, sticky=(tk.W, tk.E), pady=2)

        buttons = ttk.Frame(content)
        buttons.grid(row=len(rows), column=0, columnspan=2, pady=(10, 0), sticky=tk.E)
        ttk.Button(buttons, text="Connect", command=self._on_save).grid(row=0, column=0, padx=5)
        ttk.Button(buttons, text="Cancel", command=self._on_cancel).grid(row=0, column=1, padx=5)

        self.top.protocol("WM_DELETE_WINDOW", self._on_cancel)

    def show(self) -> BucketConfig | None:
        self.parent.wait_window(self.top)
        return self.result

    def _on_save(self) -> None:
        values = [
            self.endpoint_var.get().strip(),
            self.bucket_var.get().strip(),
            self.access_key_var.get().strip(),
            self.secret_key_var.get().strip(),
        ]
        if not all(values):
            messagebox.showerror("Error", "Endpoint, bucket and both keys are required", parent=self.top)
            return
        endpoint_url, bucket_name, access_key_id, secret_access_key = values
        self.result = BucketConfig(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
            bucket_name=bucket_name,
            region=self.region_var.get().strip() or "auto",
        )
        self.top.destroy()

    def _on_cancel(self) -> None:
        self.result = None
        self.top.destroy()
