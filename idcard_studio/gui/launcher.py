"""Desktop designer entry point and its ttk theme."""

import logging
import sys
import tkinter as tk
from tkinter import ttk

from idcard_studio import config
from idcard_studio.gui.main_window import MainWindow

# Accent follows the blue of the built-in card templates
ACCENT = "#1e40af"
ACCENT_ACTIVE = "#2563eb"
SURFACE = "#f3f4f6"
BAR = "#e5e7eb"
MUTED = "#6b7280"
FONT = ("Segoe UI", 9)

# Every style named in MainWindow, keyed by ttk style name
STYLES = {
    ".": {"font": FONT, "background": SURFACE, "foreground": "#111827"},
    "Toolbar.TFrame": {"background": BAR},
    "Toolbar.TLabel": {"background": BAR},
    "Toolbar.TButton": {"padding": (6, 3), "background": BAR},
    "Accent.TButton": {"padding": (10, 5), "background": ACCENT, "foreground": "#ffffff",
                       "font": FONT + ("bold",)},
    "Panel.TFrame": {"background": "#ffffff"},
    "Header.TLabel": {"background": "#ffffff", "font": FONT + ("bold",)},
    "Status.TFrame": {"background": BAR},
    "Status.TLabel": {"background": BAR, "foreground": MUTED, "font": ("Segoe UI", 8)},
}

STYLE_MAPS = {
    "Accent.TButton": {"background": [("active", ACCENT_ACTIVE), ("!active", ACCENT)]},
    "Toolbar.TButton": {"relief": [("pressed", "sunken"), ("!pressed", "flat")]},
}


def apply_theme(root: tk.Tk) -> ttk.Style:
    style = ttk.Style(root)
    style.theme_use("clam")
    for name, options in STYLES.items():
        style.configure(name, **options)
    for name, states in STYLE_MAPS.items():
        style.map(name, **states)
    root.configure(bg=SURFACE)
    return style


def main(argv=None):
    """Start the designer; an optional argument names a roster JSON file."""
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    root = tk.Tk()
    apply_theme(root)
    window = MainWindow(root)
    if argv:
        window.open_roster(argv[0])
    root.mainloop()


if __name__ == "__main__":
    main()
