from resume_intake.utils.logger import get_logger, sanitize_for_log

__all__ = ["get_logger", "sanitize_for_log"]
