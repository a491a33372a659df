"""
Input validation for the consumer-facing forms. Each check returns the
user-facing error message, or None when the input is acceptable.
"""

from typing import Optional

from models.job import Job, ResumePreference

MIN_PASSWORD_LENGTH = 6


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def application_error(job: Job, data: dict) -> Optional[str]:
    """
    Check an application against the job's resume-submission policy.

    Args:
        job: Target job (its resumePreference decides what is required).
        data: Applicant form data (camelCase or snake_case keys).
    """
    def get(camel: str, snake: str):
        return data.get(camel, data.get(snake))

    if _blank(get("fullName", "full_name")) or _blank(data.get("email")) or _blank(data.get("phone")):
        return "Preencha nome, e-mail e telefone."

    has_file = bool(get("resumeFile", "resume_file"))
    has_text = not _blank(get("resumeText", "resume_text"))

    policy = job.resume_preference
    if policy == ResumePreference.FILE and not has_file:
        return "Por favor, anexe seu currículo."
    if policy == ResumePreference.TEXT and not has_text:
        return "Por favor, cole seu currículo."
    if policy == ResumePreference.BOTH and not (has_file or has_text):
        return "Por favor, anexe ou cole seu currículo."
    return None


def registration_error(company_name: str, email: str, password: str, remote: bool = False) -> Optional[str]:
    """Remote accounts also need a password the auth provider will accept."""
    if _blank(company_name) or _blank(email) or _blank(password):
        return "Preencha todos os campos."
    if remote and len(password) < MIN_PASSWORD_LENGTH:
        return f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres."
    return None


def feedback_login_error(email: str, password: str) -> Optional[str]:
    if _blank(email) or _blank(password):
        return "Preencha e-mail e senha."
    return None


def feedback_register_error(name: str, email: str, password: str) -> Optional[str]:
    if _blank(name) or _blank(email) or _blank(password):
        return "Preencha todos os campos."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres."
    return None


def feedback_message_error(message: str) -> Optional[str]:
    if _blank(message):
        return "Escreva uma mensagem."
    return None
