from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import RequestFactory, TestCase
from django.utils import timezone

from core.logs import record_system_log
from core.middleware import SystemLogMiddleware
from core.models import SystemLog


class RecordSystemLogTests(TestCase):
    def test_creates_backend_log(self):
        log = record_system_log("Falha ao enviar", level=SystemLog.LEVEL_WARNING, details="ctx")
        self.assertEqual(log.source, SystemLog.SOURCE_BACKEND)
        self.assertEqual(log.level, SystemLog.LEVEL_WARNING)
        self.assertEqual(log.details, "ctx")

    def test_truncates_long_message(self):
        log = record_system_log("x" * 400)
        self.assertEqual(len(log.message), 255)

    def test_failure_to_record_is_swallowed(self):
        with mock.patch.object(SystemLog.objects, "create", side_effect=RuntimeError("db")):
            self.assertIsNone(record_system_log("erro"))


class SystemLogMiddlewareTests(TestCase):
    def test_unhandled_exception_is_recorded(self):
        middleware = SystemLogMiddleware(lambda request: None)
        request = RequestFactory().post("/api/cards/1/purchases/")

        result = middleware.process_exception(request, ValueError("quebrou"))

        self.assertIsNone(result)
        log = SystemLog.objects.get()
        self.assertEqual(log.message, "quebrou")
        self.assertIn("POST /api/cards/1/purchases/", log.details)


class CleanupSystemLogsTests(TestCase):
    def setUp(self):
        old = timezone.now() - timedelta(days=60)
        self.old_open = SystemLog.objects.create(source=SystemLog.SOURCE_BACKEND, message="antigo")
        self.old_resolved = SystemLog.objects.create(
            source=SystemLog.SOURCE_BACKEND, message="resolvido", is_resolved=True
        )
        SystemLog.objects.filter(pk__in=[self.old_open.pk, self.old_resolved.pk]).update(created_at=old)
        self.recent = SystemLog.objects.create(source=SystemLog.SOURCE_BACKEND, message="recente")

    def test_removes_old_logs(self):
        call_command("cleanup_system_logs", days=30, stdout=StringIO())
        self.assertEqual(list(SystemLog.objects.all()), [self.recent])

    def test_resolved_only(self):
        call_command("cleanup_system_logs", days=30, resolved_only=True, stdout=StringIO())
        self.assertFalse(SystemLog.objects.filter(pk=self.old_resolved.pk).exists())
        self.assertTrue(SystemLog.objects.filter(pk=self.old_open.pk).exists())
