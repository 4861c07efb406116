import logging
from typing import Any, Dict, Optional

import requests

from exam_app.config import API_BASE_URL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A backend call failed (network error, timeout or non-2xx response)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code >= 500


def _error_message(response: requests.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get('message'):
        return str(body['message'])
    return fallback


class ExamApiClient:
    """Blocking REST client for the exam submission endpoints"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or API_BASE_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None,
                params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"[API] {method} {url}")
        try:
            response = self.session.request(method, url, json=data, params=params,
                                            timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[API] {method} {url} failed: {e}")
            raise ApiError(str(e)) from e

        if not response.ok:
            message = _error_message(response, f"{response.status_code} {response.reason}")
            logger.error(f"[API] {method} {url} returned {response.status_code}: {message}")
            raise ApiError(message, response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {url}", response.status_code) from e

    # === Submissions ===

    def start_exam(self, user_id: str, exercise_id: str, total_time: int) -> Dict:
        return self.request("PUT", "/submissions/start", {
            "userId": user_id,
            "exerciseId": exercise_id,
            "totalTime": total_time,
        })

    def start_chapter_test(self, exam_data: Dict[str, Any]) -> Dict:
        return self.request("POST", "/submissions/chapter-test", exam_data)

    def list_submissions(self) -> Any:
        return self.request("GET", "/submissions")

    def submit_answer(self, submission_id: str, answer_data: Dict[str, Any]) -> Dict:
        return self.request("PATCH", f"/submissions/answer/{submission_id}", answer_data)

    def get_attempted_answers(self, submission_id: str) -> Dict:
        return self.request("GET", f"/submissions/attempted/{submission_id}")

    def pause_exam(self, submission_id: str, time_left: int) -> Dict:
        return self.request("PATCH", f"/submissions/pause/{submission_id}", {"timeLeft": time_left})

    def resume_exam(self, submission_id: str) -> Dict:
        return self.request("PATCH", f"/submissions/resume/{submission_id}")

    def complete_exam(self, submission_id: str) -> Dict:
        return self.request("POST", f"/submissions/complete/{submission_id}")

    def get_exam_report(self, submission_id: str) -> Dict:
        return self.request("GET", f"/submissions/report/{submission_id}")

    def get_chapter_exam_report(self, submission_id: str) -> Dict:
        return self.request("GET", f"/submissions/chapterTestDetails/{submission_id}")

    # === Exercises and questions ===

    def get_exercise(self, exercise_id: str) -> Dict:
        return self.request("GET", f"/exercises/{exercise_id}")

    def get_exam_question(self, submission_id: str, exercise_id: str, question_index: int) -> Dict:
        return self.request("GET", f"/questions/exam/{submission_id}/{exercise_id}/{question_index}")

    def get_chapter_test_question(self, submission_id: str, question_id: str) -> Dict:
        return self.request("GET", f"/submissions/{submission_id}/chapter-question/{question_id}")
