import tempfile
import unittest
from pathlib import Path

from botocore.exceptions import ClientError

from fakes import FakeKeychain, FakeS3Client, RecordingFactory
from r2_browser.controller import BrowserController
from r2_browser.credentials import CredentialStore
from r2_browser.models import BucketConfig, Entry
from r2_browser.presenter import BrowserPresenter
from r2_browser.settings import AppSettings, SettingsStorage

CONFIG = BucketConfig(
    access_key_id="access",
    secret_access_key="secret",
    endpoint_url="https://account.r2.cloudflarestorage.com",
    bucket_name="bucket-one",
)


class BrowserPresenterTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)
        self.fake_s3 = FakeS3Client({"docs/a.txt": b"alpha", "docs/sub/b.txt": b"bravo"})
        self.store = CredentialStore(
            self.tmp_path / "credentials.json",
            keychain=FakeKeychain(),
            client_factory=RecordingFactory(self.fake_s3),
        )
        self.settings_storage = SettingsStorage(self.tmp_path / "settings.json")
        self.dispatched = []

    def tearDown(self):
        self._tmp.cleanup()

    def make_presenter(self):
        def dispatch(func):
            self.dispatched.append(func)
            func()

        return BrowserPresenter(
            controller=BrowserController(self.store),
            settings_storage=self.settings_storage,
            dispatch=dispatch,
            run_in_background=lambda task: task(),
        )

    def test_connect_reports_result_and_done(self):
        presenter = self.make_presenter()
        results = []
        done = []

        presenter.connect(config=CONFIG, on_success=results.append, on_error=self.fail, on_done=lambda: done.append(True))

        self.assertEqual([True], results)
        self.assertEqual([True], done)
        self.assertTrue(presenter.is_connected)
        self.assertEqual(2, len(self.dispatched))

    def test_list_entries_returns_entries_for_current_prefix(self):
        self.store.save(CONFIG)
        presenter = self.make_presenter()
        presenter.open_folder("docs")
        results = []

        presenter.list_entries(on_success=results.append, on_error=self.fail)

        self.assertEqual(["sub", "a.txt"], [entry.name for entry in results[0]])

    def test_backend_failure_is_routed_to_error_callback(self):
        self.store.save(CONFIG)
        self.fake_s3.errors[("list_objects_v2", "")] = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Denied"}}, "ListObjectsV2"
        )
        presenter = self.make_presenter()
        errors = []
        done = []

        with self.assertLogs("r2_browser", level="ERROR"):
            presenter.list_entries(
                on_success=lambda _: self.fail("listing should fail"),
                on_error=errors.append,
                on_done=lambda: done.append(True),
            )

        self.assertEqual(1, len(errors))
        self.assertIn("AccessDenied", errors[0])
        self.assertEqual([True], done)

    def test_unexpected_error_is_routed_to_error_callback(self):
        presenter = self.make_presenter()
        errors = []

        with self.assertLogs("r2_browser.presenter", level="ERROR"):
            presenter.create_folder(name="new", on_success=lambda _: self.fail("not connected"), on_error=errors.append)

        self.assertEqual(["No bucket credentials configured"], errors)

    def test_upload_create_and_delete(self):
        self.store.save(CONFIG)
        presenter = self.make_presenter()
        source = self.tmp_path / "upload.txt"
        source.write_bytes(b"data")
        keys = []

        presenter.upload_file(source_path=str(source), on_success=keys.append, on_error=self.fail)
        presenter.create_folder(name="fresh", on_success=keys.append, on_error=self.fail)
        presenter.delete_entry(
            entry=Entry(name="docs", is_folder=True),
            on_success=keys.append,
            on_error=self.fail,
        )

        self.assertEqual(["upload.txt", "fresh/", None], keys)
        self.assertEqual({"upload.txt": b"data", "fresh/": b""}, self.fake_s3.objects)

    def test_download_url_callback(self):
        self.store.save(CONFIG)
        presenter = self.make_presenter()
        presenter.go_to("docs/")
        urls = []

        presenter.download_url(entry=Entry(name="a.txt"), on_success=urls.append, on_error=self.fail)

        self.assertTrue(urls[0].startswith("https://signed.example.com/bucket-one/docs/a.txt"))

    def test_operations_use_folder_at_submission_time(self):
        self.store.save(CONFIG)
        pending = []
        presenter = BrowserPresenter(
            controller=BrowserController(self.store),
            settings_storage=self.settings_storage,
            run_in_background=pending.append,
        )
        presenter.go_to("docs/")
        urls = []
        deleted = []

        presenter.download_url(entry=Entry(name="a.txt"), on_success=urls.append, on_error=self.fail)
        presenter.create_folder(name="late", on_success=deleted.append, on_error=self.fail)
        presenter.delete_entry(entry=Entry(name="a.txt"), on_success=deleted.append, on_error=self.fail)
        presenter.go_to("docs/sub/")
        for task in pending:
            task()

        self.assertEqual("docs/a.txt", self.fake_s3.presigned_calls[0]["params"]["Key"])
        self.assertTrue(urls[0].startswith("https://signed.example.com/bucket-one/docs/a.txt"))
        self.assertEqual(["docs/late/", None], deleted)
        self.assertNotIn("docs/a.txt", self.fake_s3.objects)
        self.assertEqual(b"bravo", self.fake_s3.objects["docs/sub/b.txt"])

    def test_save_settings_persists_and_updates_presenter(self):
        self.store.save(CONFIG)
        presenter = self.make_presenter()
        previous_client = self.store.client

        presenter.save_settings(AppSettings(delete_concurrency=4, remember_last_prefix=True))

        self.assertEqual(4, presenter.settings.delete_concurrency)
        self.assertTrue(presenter.settings.remember_last_prefix)
        stored = self.settings_storage.load()
        self.assertEqual(4, stored.delete_concurrency)
        self.assertTrue(stored.remember_last_prefix)
        self.assertEqual(4, self.store.delete_concurrency)
        self.assertIsNot(previous_client, self.store.client)

    def test_saved_remember_setting_starts_recording_prefix(self):
        self.store.save(CONFIG)
        presenter = self.make_presenter()

        presenter.save_settings(AppSettings(remember_last_prefix=True))
        presenter.go_to("docs/")
        presenter.list_entries(on_success=lambda _: None, on_error=self.fail)

        self.assertEqual("docs/", self.settings_storage.load().last_prefix)

    def test_remembers_last_prefix_when_enabled(self):
        self.settings_storage.save(AppSettings(remember_last_prefix=True))
        self.store.save(CONFIG)
        presenter = self.make_presenter()

        presenter.go_to("docs/sub/")
        presenter.list_entries(on_success=lambda _: None, on_error=self.fail)

        self.assertEqual("docs/sub/", self.settings_storage.load().last_prefix)

    def test_does_not_remember_prefix_by_default(self):
        self.store.save(CONFIG)
        presenter = self.make_presenter()

        presenter.go_to("docs/")
        presenter.list_entries(on_success=lambda _: None, on_error=self.fail)

        self.assertEqual("", self.settings_storage.load().last_prefix)


if __name__ == "__main__":
    unittest.main()
