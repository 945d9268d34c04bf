import customtkinter as ctk


def center_on_parent(dialog: ctk.CTkToplevel) -> None:
    """Center a dialog on its parent window and give it focus."""
    dialog.update_idletasks()

    parent_x = dialog.master.winfo_x()
    parent_y = dialog.master.winfo_y()
    parent_width = dialog.master.winfo_width()
    parent_height = dialog.master.winfo_height()

    dialog_width = dialog.winfo_width()
    dialog_height = dialog.winfo_height()

    x = parent_x + (parent_width - dialog_width) // 2
    y = parent_y + (parent_height - dialog_height) // 2

    # Ensure dialog fits on screen
    screen_width = dialog.winfo_screenwidth()
    screen_height = dialog.winfo_screenheight()

    x = max(0, min(x, screen_width - dialog_width))
    y = max(0, min(y, screen_height - dialog_height))

    dialog.geometry(f"+{x}+{y}")
    dialog.focus_set()
