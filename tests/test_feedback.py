import os
import tempfile
import unittest

from config.settings import Settings
from core.factory import create_context
from core.feedback import LOGIN_FIRST
from models.feedback import FeedbackType

CONTENT_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "content.yaml")


class TestFeedbackBoard(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.settings = Settings(
            firebase_api_key="",
            firebase_project_id="",
            db_path=os.path.join(self.tmp.name, "board.db"),
            content_path=CONTENT_PATH,
        )
        self.ctx = await create_context(self.settings).start()
        self.board = self.ctx.feedback_board

    async def asyncTearDown(self):
        await self.ctx.close()
        self.tmp.cleanup()

    async def reopen(self):
        await self.ctx.close()
        self.ctx = await create_context(self.settings).start()
        self.board = self.ctx.feedback_board

    async def test_login_names_user_after_email(self):
        self.assertTrue(self.board.login("maria.silva@x.com", "anything"))
        self.assertEqual(self.board.user.name, "maria.silva")
        self.assertIsNone(self.board.error)

    async def test_login_requires_both_fields(self):
        self.assertFalse(self.board.login("maria@x.com", ""))
        self.assertEqual(self.board.error, "Preencha e-mail e senha.")
        self.assertIsNone(self.board.user)

    async def test_register_enforces_password_length(self):
        self.assertFalse(self.board.register("Maria", "maria@x.com", "123"))
        self.assertTrue(self.board.register("Maria", "maria@x.com", "123456"))
        self.assertEqual(self.board.user.name, "Maria")

    async def test_user_survives_restart_until_logout(self):
        self.board.register("Maria", "maria@x.com", "123456")
        await self.reopen()
        self.assertEqual(self.board.user.email, "maria@x.com")
        self.board.logout()
        await self.reopen()
        self.assertIsNone(self.board.user)

    async def test_submit_requires_user(self):
        self.assertIsNone(await self.board.submit("elogio", "Muito bom"))
        self.assertEqual(self.board.error, LOGIN_FIRST)

    async def test_submit_requires_message(self):
        self.board.login("maria@x.com", "x")
        self.assertIsNone(await self.board.submit("elogio", "   "))
        self.assertEqual(self.board.entries, [])

    async def test_entries_newest_first_and_persisted(self):
        self.board.login("maria@x.com", "x")
        first = await self.board.submit("elogio", "Muito bom")
        second = await self.board.submit(FeedbackType.QUESTION, "Como publico uma vaga?")

        self.assertEqual([e.id for e in self.board.entries], [second.id, first.id])
        self.assertEqual(second.type, FeedbackType.QUESTION)
        self.assertEqual(first.name, "maria")

        await self.reopen()
        self.assertEqual([e.id for e in self.board.entries], [second.id, first.id])

    async def test_unknown_type_becomes_suggestion(self):
        self.board.login("maria@x.com", "x")
        entry = await self.board.submit("spam", "Olá")
        self.assertEqual(entry.type, FeedbackType.SUGGESTION)

    async def test_feedback_user_is_separate_from_employer_session(self):
        self.board.login("maria@x.com", "x")
        self.assertIsNone(self.ctx.session)


if __name__ == "__main__":
    unittest.main()
