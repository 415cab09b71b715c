"""Module entry point for the bucket browser application."""
import locale
import logging
import os
import tkinter as tk

from .tk_view import BucketBrowserApp


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("R2_BROWSER_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logging.getLogger(__name__).debug("Falling back to the default collation locale")
    root = tk.Tk()
    BucketBrowserApp(root)
    root.mainloop()


if __name__ == "__main__":
    main()
