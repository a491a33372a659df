import asyncio
import os
import tempfile
import unittest
from unittest.mock import MagicMock

from backends.base import RemoteError
from backends.memory import InMemoryCollaborator
from backends.subscription import PollingSubscription
from config.settings import Settings
from core.factory import create_context
from core.feedback import SUBMIT_FAILED
from core.strategies import RemoteStrategy
from models.state import Page
from tools.local_store import LocalStore
from tools.notifier import JOB_POST_FAILED, LOGIN_REQUIRED

CONTENT_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "content.yaml")


async def settle(rounds: int = 10):
    """Let queued callbacks and background tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class RemoteContextTestCase(unittest.IsolatedAsyncioTestCase):
    live = True
    autoflush = True
    poll_interval = 0.01

    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = LocalStore(os.path.join(self.tmp.name, "board.db"))
        self.remote = InMemoryCollaborator(live=self.live, autoflush=self.autoflush)
        self.remote.seed_job({
            "id": "seeded",
            "employerId": "uid-other",
            "title": "Analista de Dados",
            "location": "Recife, PE",
            "createdAt": "2024-07-01T12:00:00Z",
        })
        self.settings = Settings(
            firebase_api_key="", firebase_project_id="", poll_interval=self.poll_interval, content_path=CONTENT_PATH,
        )
        self.ctx = create_context(self.settings, collaborator=self.remote, store=self.store)
        await self.ctx.start()
        self.remote.flush()

    async def asyncTearDown(self):
        await self.ctx.close()
        self.tmp.cleanup()

    async def login_employer(self):
        self.assertTrue(await self.ctx.register("acme", "a@x.com", "pw123456"))
        await settle()
        return self.ctx.session


class TestRemoteStartup(RemoteContextTestCase):
    async def test_remote_mode_selected(self):
        self.assertIsInstance(self.ctx.strategy, RemoteStrategy)
        self.assertEqual(self.ctx.mode, "remote")
        self.assertFalse(self.ctx.strategy.polling)

    async def test_jobs_come_from_the_backend_only(self):
        self.assertEqual([j.id for j in self.ctx.jobs], ["seeded"])
        self.assertEqual(self.ctx.jobs[0].posted_date, "2024-07-01T12:00:00+00:00")

    async def test_one_subscription_each(self):
        self.assertEqual(self.remote.job_listener_count, 1)
        self.assertEqual(self.remote.auth_listener_count, 1)

    async def test_restart_replaces_subscriptions(self):
        await self.ctx.start()
        await self.ctx.start()
        self.assertEqual(self.remote.job_listener_count, 1)
        self.assertEqual(self.remote.auth_listener_count, 1)

    async def test_close_cancels_everything(self):
        await self.ctx.close()
        self.assertEqual(self.remote.job_listener_count, 0)
        self.assertEqual(self.remote.auth_listener_count, 0)
        self.assertEqual(self.ctx.strategy.subscriptions, [])


class TestRemoteSession(RemoteContextTestCase):
    async def test_register_sets_session_without_touching_local_slots(self):
        employer = await self.login_employer()
        self.assertEqual(employer.company_name, "acme")
        self.assertEqual(self.ctx.page, Page.EMPLOYER)
        self.assertIsNone(self.store.load_session())
        self.assertIsNone(self.store.read("employers"))

    async def test_short_password_rejected_before_remote_call(self):
        self.assertFalse(await self.ctx.register("acme", "a@x.com", "123"))
        self.assertIsNone(self.ctx.session)
        self.assertEqual(self.remote.auth_listener_count, 1)

    async def test_duplicate_email_fails(self):
        await self.login_employer()
        await self.ctx.logout()
        self.assertFalse(await self.ctx.register("acme 2", "a@x.com", "pw123456"))
        self.assertIsNone(self.ctx.session)

    async def test_login_and_bad_credentials(self):
        await self.login_employer()
        await self.ctx.logout()
        self.assertFalse(await self.ctx.login("a@x.com", "wrong"))
        self.assertIsNone(self.ctx.session)
        self.assertTrue(await self.ctx.login("a@x.com", "pw123456"))
        await settle()
        self.assertEqual(self.ctx.session.company_name, "acme")

    async def test_login_without_employer_profile_uses_email_name(self):
        await self.login_employer()
        await self.ctx.logout()
        self.remote.fail("get_employer")
        self.assertTrue(await self.ctx.login("a@x.com", "pw123456"))
        self.assertEqual(self.ctx.session.company_name, "a")

    async def test_remote_sign_out_clears_session(self):
        await self.login_employer()
        listener = MagicMock()
        self.ctx.subscribe(listener)
        await self.remote.sign_out()
        self.assertIsNone(self.ctx.session)
        listener.assert_called()

    async def test_logout_ignores_remote_failure(self):
        await self.login_employer()
        self.remote.fail("sign_out")
        await self.ctx.logout()
        self.assertIsNone(self.ctx.session)


class TestRemoteJobs(RemoteContextTestCase):
    async def test_add_job_appears_through_notification(self):
        employer = await self.login_employer()
        job = await self.ctx.add_job({"title": "Dev", "location": "SP", "resumePreference": "text"})

        self.assertEqual(job.employer_id, employer.id)
        self.assertEqual(self.ctx.jobs[0].id, job.id)
        self.assertEqual(self.ctx.jobs[0].applications, [])
        self.assertEqual(len(self.ctx.jobs), 2)

    async def test_add_job_logged_out(self):
        listener = MagicMock()
        self.ctx.alerts.subscribe(listener)
        self.assertIsNone(await self.ctx.add_job({"title": "Dev", "location": "SP"}))
        listener.assert_called_once_with(LOGIN_REQUIRED)

    async def test_add_job_failure_is_alerted(self):
        await self.login_employer()
        self.remote.fail("add_job")
        listener = MagicMock()
        self.ctx.alerts.subscribe(listener)

        self.assertIsNone(await self.ctx.add_job({"title": "Dev", "location": "SP"}))
        listener.assert_called_once_with(JOB_POST_FAILED)
        self.assertEqual([j.id for j in self.ctx.jobs], ["seeded"])

    async def test_update_job(self):
        ok = await self.ctx.update_job("seeded", {"title": "Cientista de Dados", "location": "Recife, PE"})
        self.assertTrue(ok)
        job = self.ctx.get_job("seeded")
        self.assertEqual(job.title, "Cientista de Dados")
        self.assertEqual(job.posted_date, "2024-07-01T12:00:00+00:00")
        self.assertEqual(job.employer_id, "uid-other")

    async def test_update_failure_is_absorbed(self):
        self.remote.fail("update_job")
        self.assertFalse(await self.ctx.update_job("seeded", {"title": "X", "location": "Y"}))
        self.assertEqual(self.ctx.get_job("seeded").title, "Analista de Dados")

    async def test_delete_job(self):
        self.assertTrue(await self.ctx.delete_job("seeded"))
        self.assertEqual(self.ctx.jobs, [])
        self.assertFalse(await self.ctx.delete_job("seeded"))

    async def test_delete_failure_is_absorbed(self):
        self.remote.fail("delete_job", RemoteError("permission denied"))
        self.assertFalse(await self.ctx.delete_job("seeded"))
        self.assertIsNotNone(self.ctx.get_job("seeded"))

    async def test_add_application(self):
        application = await self.ctx.add_application("seeded", {
            "fullName": "Ana", "email": "ana@x.com", "phone": "119",
            "resumeFile": {"name": "cv.pdf", "type": "application/pdf", "content": "JVBERi0="},
        })
        self.assertIsNotNone(application)
        applications = self.ctx.get_job("seeded").applications
        self.assertEqual([a.id for a in applications], [application.id])
        self.assertEqual(applications[0].resume_file.name, "cv.pdf")

    async def test_application_policy_checked_before_delegating(self):
        # seeded job has the default "file" policy
        self.remote.fail("add_application", AssertionError("must not be called"))
        self.assertIsNone(await self.ctx.add_application("seeded", {
            "fullName": "Ana", "email": "ana@x.com", "phone": "119", "resumeText": "cv",
        }))

    async def test_favorites_are_device_local(self):
        self.assertTrue(self.ctx.toggle_favorite("seeded"))
        self.assertEqual(self.store.read("favorites"), ["seeded"])
        self.assertEqual([j.id for j in self.ctx.favorite_jobs()], ["seeded"])


class TestHeldNotifications(RemoteContextTestCase):
    autoflush = False

    async def test_no_local_echo(self):
        self.remote.autoflush = True
        await self.login_employer()
        self.remote.autoflush = False

        job = await self.ctx.add_job({"title": "Dev", "location": "SP"})
        self.assertIsNotNone(job)
        self.assertIsNone(self.ctx.get_job(job.id))

        self.remote.flush()
        self.assertEqual([j.id for j in self.ctx.jobs], [job.id, "seeded"])

    async def test_update_waits_for_notification(self):
        await self.ctx.update_job("seeded", {"title": "Cientista de Dados", "location": "Recife, PE"})
        self.assertEqual(self.ctx.get_job("seeded").title, "Analista de Dados")
        self.remote.flush()
        self.assertEqual(self.ctx.get_job("seeded").title, "Cientista de Dados")

    async def test_notifications_after_close_are_ignored(self):
        await self.ctx.delete_job("seeded")
        listener = MagicMock()
        self.ctx.subscribe(listener)
        await self.ctx.close()
        self.remote.flush()
        self.assertIsNotNone(self.ctx.get_job("seeded"))
        listener.assert_not_called()


class TestPollingFallback(RemoteContextTestCase):
    live = False

    async def test_polls_when_no_live_listener(self):
        self.assertTrue(self.ctx.strategy.polling)
        await asyncio.sleep(0.05)
        self.assertEqual([j.id for j in self.ctx.jobs], ["seeded"])

        self.remote.seed_job({"id": "late", "employerId": "x", "title": "Novo", "location": "SP",
                              "createdAt": "2024-08-01T00:00:00Z"})
        await asyncio.sleep(0.05)
        self.assertEqual([j.id for j in self.ctx.jobs], ["late", "seeded"])

    async def test_failed_poll_keeps_going(self):
        await asyncio.sleep(0.05)
        self.remote.fail("fetch_jobs")
        await asyncio.sleep(0.05)
        sub = self.ctx.strategy.subscriptions[0]
        self.assertGreater(sub.failures, 0)
        self.remote.recover()
        await self.ctx.delete_job("seeded")
        await asyncio.sleep(0.05)
        self.assertEqual(self.ctx.jobs, [])

    async def test_close_stops_polling(self):
        sub = self.ctx.strategy.subscriptions[0]
        await self.ctx.close()
        polls = sub.polls
        await asyncio.sleep(0.05)
        self.assertEqual(sub.polls, polls)
        self.assertFalse(sub.active)


class TestSlowPolling(RemoteContextTestCase):
    live = False
    poll_interval = 60

    async def test_own_writes_are_fetched_right_away(self):
        await settle()
        sub = self.ctx.strategy.subscriptions[0]
        polls = sub.polls

        employer = await self.login_employer()
        job = await self.ctx.add_job({"title": "Dev", "location": "SP", "resumePreference": "text"})
        await asyncio.sleep(0.05)

        self.assertGreater(sub.polls, polls)
        self.assertEqual(self.ctx.jobs[0].id, job.id)
        self.assertEqual(self.ctx.jobs[0].employer_id, employer.id)

    async def test_failed_write_does_not_poll(self):
        await self.login_employer()
        await settle()
        sub = self.ctx.strategy.subscriptions[0]
        polls = sub.polls

        self.remote.fail("delete_job")
        self.assertFalse(await self.ctx.delete_job("seeded"))
        await settle()

        self.assertEqual(sub.polls, polls)


class TestListenerBreakdown(RemoteContextTestCase):
    async def test_broken_listener_degrades_to_polling(self):
        self.remote.break_listeners()
        self.assertTrue(self.ctx.strategy.polling)
        self.assertEqual(self.remote.job_listener_count, 0)
        self.assertIsInstance(self.ctx.strategy.subscriptions[0], PollingSubscription)

        self.remote.seed_job({"id": "late", "employerId": "x", "title": "Novo", "location": "SP",
                              "createdAt": "2024-08-01T00:00:00Z"})
        await asyncio.sleep(0.05)
        self.assertEqual(self.ctx.jobs[0].id, "late")


class TestRemoteFeedback(RemoteContextTestCase):
    async def test_submit_arrives_through_subscription(self):
        board = self.ctx.feedback_board
        self.assertTrue(board.register("Ana", "ana@x.com", "segredo"))
        entry = await board.submit("elogio", "Ótimo site!")
        self.assertEqual([e.id for e in board.entries], [entry.id])
        self.assertEqual(self.store.read("feedbackUser"), {"name": "Ana", "email": "ana@x.com"})

    async def test_submit_failure(self):
        board = self.ctx.feedback_board
        board.login("ana@x.com", "whatever")
        self.remote.fail("add_feedback")
        self.assertIsNone(await board.submit("duvida", "Como funciona?"))
        self.assertEqual(board.error, SUBMIT_FAILED)
        self.assertEqual(board.entries, [])


if __name__ == "__main__":
    unittest.main()
