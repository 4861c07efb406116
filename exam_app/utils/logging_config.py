"""
Audit Logging for Exam Sessions

Tracks exam lifecycle, answer persistence and proctoring events
for security monitoring and support.
"""

import logging
import os
import json
from datetime import datetime
from typing import Optional, Dict, Any
from exam_app.config import LOG_DIR

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_dir: Optional[str] = None, level: int = logging.INFO) -> str:
    """Attach the daily file handler and a console handler to the package logger.

    Safe to call more than once; handlers are only added the first time.

    Returns:
        Path of the log file in use.
    """
    log_dir = log_dir or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, f'exam_app_{datetime.now().strftime("%Y%m%d")}.log')

    root = logging.getLogger('exam_app')
    root.setLevel(level)
    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in (logging.FileHandler(log_file, encoding='utf-8'), logging.StreamHandler()):
            handler.setFormatter(formatter)
            root.addHandler(handler)
    return log_file


class AuditLogger:
    """Centralized audit trail for exam sessions"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('exam_app.audit')

    def log_user_action(self, user_id: Optional[str], action: str,
                        submission_id: Optional[str] = None,
                        details: Optional[Dict[str, Any]] = None,
                        level: int = logging.INFO):
        """
        Write one audit entry

        Args:
            user_id: ID of the test-taker (None when unknown)
            action: Action name (e.g., 'EXAM_START', 'ANSWER_SAVE')
            submission_id: Submission the action belongs to
            details: Extra values, serialized as JSON
            level: Logging level for the entry
        """
        log_msg = f"[AUDIT] User:{user_id} Action:{action}"
        if submission_id:
            log_msg += f" Submission:{submission_id}"
        if details:
            log_msg += f" Details:{json.dumps(details, default=str, sort_keys=True)}"
        self.logger.log(level, log_msg)

    # === Exam Session Logging ===

    def log_exam_start(self, user_id: Optional[str], submission_id: str, mode: str,
                       total_questions: int, time_remaining: int, resumed: bool = False):
        """Log exam start (or re-entry of a paused submission)"""
        self.log_user_action(
            user_id=user_id,
            action="EXAM_RESUME" if resumed else "EXAM_START",
            submission_id=submission_id,
            details={
                "mode": mode,
                "total_questions": total_questions,
                "time_remaining": time_remaining
            }
        )

    def log_exam_pause(self, user_id: Optional[str], submission_id: str, time_remaining: int,
                       success: bool = True, reason: Optional[str] = None):
        """Log pause requests"""
        details: Dict[str, Any] = {"time_remaining": time_remaining, "success": success}
        if reason:
            details["reason"] = reason
        self.log_user_action(
            user_id=user_id,
            action="EXAM_PAUSE",
            submission_id=submission_id,
            details=details,
            level=logging.INFO if success else logging.WARNING
        )

    def log_exam_resume(self, user_id: Optional[str], submission_id: str, time_remaining: int):
        """Log in-place resume of a paused session"""
        self.log_user_action(
            user_id=user_id,
            action="EXAM_RESUME",
            submission_id=submission_id,
            details={"time_remaining": time_remaining}
        )

    def log_exam_submit(self, user_id: Optional[str], submission_id: str, score: Any,
                        total_questions: int, automatic: bool):
        """Log exam submission"""
        self.log_user_action(
            user_id=user_id,
            action="EXAM_SUBMIT",
            submission_id=submission_id,
            details={
                "score": score,
                "total_questions": total_questions,
                "automatic": automatic
            }
        )

    def log_answer_save(self, user_id: Optional[str], submission_id: str, question_key: Any,
                        dwell_seconds: int):
        """Log answer submissions (called per question)"""
        self.log_user_action(
            user_id=user_id,
            action="ANSWER_SAVE",
            submission_id=submission_id,
            details={"question_key": question_key, "dwell_seconds": dwell_seconds}
        )

    def log_answer_failure(self, user_id: Optional[str], submission_id: str, question_key: Any,
                           reason: str):
        """Log answers the backend did not accept"""
        self.log_user_action(
            user_id=user_id,
            action="ANSWER_SAVE_FAILED",
            submission_id=submission_id,
            details={"question_key": question_key, "reason": reason},
            level=logging.WARNING
        )

    # === Security Event Logging ===

    def log_fullscreen_exit(self, user_id: Optional[str], submission_id: str, exit_count: int):
        """Log full-screen exits during an active exam (anti-cheating)"""
        self.log_user_action(
            user_id=user_id,
            action="FULLSCREEN_EXIT",
            submission_id=submission_id,
            details={"exit_count": exit_count},
            level=logging.WARNING
        )

    def log_fullscreen_unavailable(self, user_id: Optional[str], submission_id: Optional[str],
                                   reason: str):
        """Log degraded proctoring when full-screen cannot be engaged"""
        self.log_user_action(
            user_id=user_id,
            action="FULLSCREEN_UNAVAILABLE",
            submission_id=submission_id,
            details={"reason": reason},
            level=logging.WARNING
        )


# Global logger instance - singleton pattern
_audit_logger_instance = None

def get_audit_logger() -> AuditLogger:
    """Get or create the global audit logger instance"""
    global _audit_logger_instance
    if _audit_logger_instance is None:
        _audit_logger_instance = AuditLogger()
    return _audit_logger_instance
