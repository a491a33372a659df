import unittest

from core.search import filter_jobs
from core.validation import (
    application_error,
    feedback_login_error,
    feedback_message_error,
    feedback_register_error,
    registration_error,
)
from models.job import Job, JobType, ResumePreference


def make_job(job_id="job-1", policy=ResumePreference.FILE, **fields):
    data = {
        "id": job_id,
        "employer_id": "emp-1",
        "title": "Dev",
        "location": "São Paulo, SP",
        "posted_date": "2024-07-20T00:00:00+00:00",
        "resume_preference": policy,
    }
    data.update(fields)
    return Job(**data)


APPLICANT = {"fullName": "Ana", "email": "ana@x.com", "phone": "119"}
RESUME_FILE = {"name": "cv.pdf", "type": "application/pdf", "content": "JVBERi0="}


class TestApplicationPolicy(unittest.TestCase):
    def test_file_policy(self):
        job = make_job(policy=ResumePreference.FILE)
        self.assertEqual(application_error(job, {**APPLICANT, "resumeText": "cv"}), "Por favor, anexe seu currículo.")
        self.assertIsNone(application_error(job, {**APPLICANT, "resumeFile": RESUME_FILE}))

    def test_text_policy(self):
        job = make_job(policy=ResumePreference.TEXT)
        self.assertEqual(application_error(job, {**APPLICANT, "resumeText": "   "}), "Por favor, cole seu currículo.")
        self.assertIsNone(application_error(job, {**APPLICANT, "resumeText": "cv"}))

    def test_both_policy(self):
        job = make_job(policy=ResumePreference.BOTH)
        self.assertEqual(application_error(job, APPLICANT), "Por favor, anexe ou cole seu currículo.")
        self.assertIsNone(application_error(job, {**APPLICANT, "resumeText": "cv"}))
        self.assertIsNone(application_error(job, {**APPLICANT, "resumeFile": RESUME_FILE}))

    def test_none_policy(self):
        self.assertIsNone(application_error(make_job(policy=ResumePreference.NONE), APPLICANT))

    def test_snake_case_keys(self):
        job = make_job(policy=ResumePreference.TEXT)
        data = {"full_name": "Ana", "email": "ana@x.com", "phone": "119", "resume_text": "cv"}
        self.assertIsNone(application_error(job, data))

    def test_contact_required(self):
        job = make_job(policy=ResumePreference.NONE)
        for missing in ("fullName", "email", "phone"):
            data = {**APPLICANT, missing: ""}
            self.assertEqual(application_error(job, data), "Preencha nome, e-mail e telefone.")


class TestRegistration(unittest.TestCase):
    def test_blank_fields(self):
        self.assertIsNotNone(registration_error("acme", "", "pw"))

    def test_password_length_only_matters_remotely(self):
        self.assertIsNone(registration_error("acme", "a@x.com", "pw"))
        self.assertIsNotNone(registration_error("acme", "a@x.com", "pw", remote=True))
        self.assertIsNone(registration_error("acme", "a@x.com", "pw1234", remote=True))


class TestFeedbackForms(unittest.TestCase):
    def test_login(self):
        self.assertIsNotNone(feedback_login_error("", "x"))
        self.assertIsNone(feedback_login_error("a@x.com", "x"))

    def test_register(self):
        self.assertEqual(feedback_register_error("Ana", "a@x.com", "12345"), "Senha deve ter pelo menos 6 caracteres.")
        self.assertIsNone(feedback_register_error("Ana", "a@x.com", "123456"))

    def test_message(self):
        self.assertIsNotNone(feedback_message_error("  "))


class TestSearch(unittest.TestCase):
    def setUp(self):
        self.jobs = [
            make_job("a", title="Desenvolvedor Python", company_name="Acme", location="São Paulo, SP"),
            make_job("b", title="Estágio em Marketing", location="Belo Horizonte, MG", job_type=JobType.INTERNSHIP),
            make_job("c", title="Analista", company_name="Python Brasil", location="Recife, PE"),
        ]

    def test_term_matches_title_or_company(self):
        self.assertEqual([j.id for j in filter_jobs(self.jobs, term="PYTHON")], ["a", "c"])

    def test_location(self):
        self.assertEqual([j.id for j in filter_jobs(self.jobs, location="horizonte")], ["b"])

    def test_job_type(self):
        self.assertEqual([j.id for j in filter_jobs(self.jobs, job_type="estagio")], ["b"])
        self.assertEqual([j.id for j in filter_jobs(self.jobs, job_type=JobType.COURSE)], [])

    def test_combined_and_empty_filters(self):
        self.assertEqual([j.id for j in filter_jobs(self.jobs, term="python", location="recife")], ["c"])
        self.assertEqual(len(filter_jobs(self.jobs)), 3)

    def test_unknown_job_type_raises(self):
        with self.assertRaises(ValueError):
            filter_jobs(self.jobs, job_type="freelance")


if __name__ == "__main__":
    unittest.main()
