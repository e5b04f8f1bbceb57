import unittest
from unittest import mock

from models.User import User
from services import chat_service, fcm_service
from tests.helpers import ApiTestCase


class ChatTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.ana = self.register("ana@example.com", "Ana")
        self.bob = self.register("bob@example.com", "Bob")
        self.plan = self.create_plan(self.ana)
        self.base = f"/chats/plans/{self.plan['id']}"

    def send(self, account, content="Hola!", **extra):
        return self.client.post(f"{self.base}/messages", json={"content": content, **extra}, headers=account["headers"])

    def unread(self, account):
        resp = self.client.get(f"{self.base}/messages/unread", headers=account["headers"])
        self.assertEqual(resp.status_code, 200)
        return resp.json()["unread_count"]

    def test_participant_message_is_read_by_sender(self):
        resp = self.send(self.ana)
        self.assertEqual(resp.status_code, 201)
        chat = resp.json()["chat"]
        self.assertEqual(len(chat["messages"]), 1)
        message = chat["messages"][0]
        self.assertEqual(message["read_by"], [self.ana["user"]["id"]])
        self.assertEqual(message["type"], "text")
        self.assertEqual(chat["last_message"]["id"], message["id"])

    def test_non_participant_cannot_send_or_read(self):
        resp = self.send(self.bob)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "ChatError")
        self.assertEqual(self.client.get(self.base, headers=self.bob["headers"]).status_code, 400)
        self.assertEqual(
            self.client.get(f"{self.base}/messages/unread", headers=self.bob["headers"]).status_code, 400
        )

    def test_missing_chat_is_404(self):
        resp = self.client.get("/chats/plans/9999", headers=self.ana["headers"])
        self.assertEqual(resp.status_code, 404)

    def test_blank_content_is_rejected(self):
        resp = self.send(self.ana, content="   ")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("content", resp.json()["fields"])

    def test_mark_as_read_is_idempotent(self):
        self.client.post(f"/plans/{self.plan['id']}/join", headers=self.bob["headers"])
        self.send(self.ana, "first")
        self.send(self.ana, "second")
        self.assertEqual(self.unread(self.bob), 2)
        self.assertEqual(self.unread(self.ana), 0)

        once = self.client.put(f"{self.base}/messages/read", headers=self.bob["headers"])
        self.assertEqual(once.status_code, 200)
        self.assertEqual(self.unread(self.bob), 0)

        twice = self.client.put(f"{self.base}/messages/read", headers=self.bob["headers"])
        self.assertEqual(twice.status_code, 200)
        self.assertEqual(self.unread(self.bob), 0)

        chat = self.client.get(self.base, headers=self.bob["headers"]).json()["chat"]
        for message in chat["messages"]:
            self.assertEqual(sorted(message["read_by"]), sorted([self.ana["user"]["id"], self.bob["user"]["id"]]))

    def test_leaving_plan_revokes_chat_access(self):
        self.client.post(f"/plans/{self.plan['id']}/join", headers=self.bob["headers"])
        self.assertEqual(self.send(self.bob).status_code, 201)
        self.client.post(f"/plans/{self.plan['id']}/leave", headers=self.bob["headers"])
        self.assertEqual(self.send(self.bob).status_code, 400)

    def test_new_message_notifies_other_participants(self):
        self.client.post(f"/plans/{self.plan['id']}/join", headers=self.bob["headers"])
        self.client.put("/user/fcm-token", json={"fcmToken": "device-bob"}, headers=self.bob["headers"])
        self.client.put("/user/fcm-token", json={"fcmToken": "device-ana"}, headers=self.ana["headers"])

        with mock.patch.object(chat_service, "notify_users") as notify:
            self.send(self.ana, "See you there")
        notify.assert_called_once()
        recipients, setting = notify.call_args.args[0], notify.call_args.args[1]
        self.assertEqual([u.id for u in recipients], [self.bob["user"]["id"]])
        self.assertEqual(setting, "chat_messages")


class NotifyUsersTests(unittest.TestCase):
    def test_only_users_with_token_and_setting_are_pushed(self):
        muted = User(fcm_token="t-muted", settings={"notifications": {"enabled": True, "chat_messages": False}})
        no_token = User(fcm_token=None, settings={})
        listening = User(fcm_token="t-on", settings={})
        with mock.patch.object(fcm_service, "send_notification_to_multiple", return_value={"success": 1}) as send:
            fcm_service.notify_users([muted, no_token, listening], "chat_messages", "Title", "Body")
        send.assert_called_once_with(["t-on"], "Title", "Body", None)


if __name__ == "__main__":
    unittest.main()
