"""Launcher window: title, progress bar, status message, and action buttons."""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Callable, Optional

from ...viewmodels.launcher_vm import LauncherViewState


class LauncherWindow(tk.Tk):
    """UI-only window; every button forwards to a callback from the App."""

    def __init__(
        self,
        *,
        title: str,
        on_proceed: Callable[[], None],
        on_skip: Callable[[], None],
        on_close: Callable[[], None],
        on_details: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__()
        self.title(title)
        self.resizable(False, False)
        self.minsize(460, 160)
        self.protocol("WM_DELETE_WINDOW", on_close)

        self._title_var = tk.StringVar(value="")
        self._message_var = tk.StringVar(value="")
        self._percent_var = tk.StringVar(value="")
        self._indeterminate = False

        pad = dict(padx=10, pady=6)
        self.columnconfigure(0, weight=1)
        ttk.Label(self, textvariable=self._title_var, font=("Segoe UI", 11, "bold")).grid(
            row=0, column=0, columnspan=2, sticky="w", **pad
        )
        self._progress = ttk.Progressbar(self, orient="horizontal", mode="determinate", maximum=100)
        self._progress.grid(row=1, column=0, sticky="ew", **pad)
        ttk.Label(self, textvariable=self._percent_var, width=5).grid(row=1, column=1, sticky="e", **pad)
        ttk.Label(self, textvariable=self._message_var, wraplength=420).grid(
            row=2, column=0, columnspan=2, sticky="w", **pad
        )

        footer = ttk.Frame(self)
        footer.grid(row=3, column=0, columnspan=2, sticky="e", **pad)
        self._proceed_button = ttk.Button(footer, text="Update", command=on_proceed)
        self._skip_button = ttk.Button(footer, text="Skip Update", command=on_skip)
        self._close_button = ttk.Button(footer, text="Close", command=on_close)
        self._close_button.grid(row=0, column=3, padx=(6, 0))
        self._details_button = (
            ttk.Button(footer, text="What's New", command=on_details) if on_details else None
        )

    def render(self, state: LauncherViewState) -> None:
        self._title_var.set(state.title)
        self._message_var.set(state.error_message or state.message)
        self._set_progress(state)
        self._layout_buttons(state)

    def _set_progress(self, state: LauncherViewState) -> None:
        if state.indeterminate:
            if not self._indeterminate:
                self._progress.configure(mode="indeterminate")
                self._progress.start(15)
                self._indeterminate = True
            self._percent_var.set("")
            return
        if self._indeterminate:
            self._progress.stop()
            self._progress.configure(mode="determinate")
            self._indeterminate = False
        self._progress["value"] = state.progress * 100
        self._percent_var.set(state.percent_label)

    def _layout_buttons(self, state: LauncherViewState) -> None:
        show_proceed = state.update_available
        show_skip = (state.update_available and state.can_skip) or (
            state.recovery_label == "Skip Update"
        )
        self._toggle(self._proceed_button, show_proceed, column=0)
        self._toggle(self._skip_button, show_skip, column=1)
        if self._details_button is not None:
            self._toggle(self._details_button, state.update_available, column=2)

    @staticmethod
    def _toggle(button: ttk.Button, visible: bool, *, column: int) -> None:
        if visible:
            button.grid(row=0, column=column, padx=(6, 0))
        else:
            button.grid_remove()


def schedule_drain(
    window: tk.Misc, drain: Callable[[], Optional[LauncherViewState]], render: Callable, interval_ms: int = 50
) -> None:
    """Poll the view model from the Tk thread and render coalesced updates."""

    def _tick() -> None:
        state = drain()
        if state is not None:
            render(state)
        window.after(interval_ms, _tick)

    window.after(interval_ms, _tick)
