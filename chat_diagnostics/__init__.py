from chat_diagnostics.firebase_diagnostics import main, new_diagnostics, run, write_report

__all__ = ["main", "run", "new_diagnostics", "write_report"]
