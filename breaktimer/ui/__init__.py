"""UI module - system tray and break window."""
