import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
from redis import exceptions as redis_exceptions

from project_tracker.cache import InMemoryCache, RedisCache
from project_tracker.storage import InMemoryStorageClient, LocalDiskStorageClient, S3StorageClient


class InMemoryStorageTests(unittest.TestCase):
    def test_roundtrip_and_missing(self):
        storage = InMemoryStorageClient(base_url="/files")
        storage.put_bytes("projects/1/media/a.jpg", b"abc", "image/jpeg")
        self.assertEqual(storage.get_bytes("projects/1/media/a.jpg"), b"abc")
        self.assertEqual(storage.url_for("projects/1/media/a.jpg"), "/files/projects/1/media/a.jpg")
        storage.delete("projects/1/media/a.jpg")
        with self.assertRaises(FileNotFoundError):
            storage.get_bytes("projects/1/media/a.jpg")


class LocalDiskStorageTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.storage = LocalDiskStorageClient(root=self.tmpdir.name)

    def test_writes_under_root(self):
        self.storage.put_bytes("projects/2/media/b.mp4", b"\x00\x01", "video/mp4")
        full = os.path.join(self.tmpdir.name, "projects", "2", "media", "b.mp4")
        self.assertTrue(os.path.exists(full))
        self.assertEqual(self.storage.get_bytes("projects/2/media/b.mp4"), b"\x00\x01")
        self.storage.delete("projects/2/media/b.mp4")
        self.storage.delete("projects/2/media/b.mp4")
        self.assertFalse(os.path.exists(full))
        with self.assertRaises(FileNotFoundError):
            self.storage.get_bytes("projects/2/media/b.mp4")

    def test_rejects_paths_outside_root(self):
        with self.assertRaises(ValueError):
            self.storage.get_bytes("../secrets.txt")


class S3StorageTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("project_tracker.storage.boto3.client")
        self.mock_client_factory = patcher.start()
        self.addCleanup(patcher.stop)
        self.s3 = self.mock_client_factory.return_value
        self.storage = S3StorageClient(
            bucket="media",
            region="ap-southeast-2",
            endpoint="",
            access_key_id="key",
            secret_access_key="secret",
        )

    def test_put_and_presign(self):
        self.storage.put_bytes("projects/1/media/a.jpg", b"abc", "image/jpeg")
        self.s3.put_object.assert_called_once_with(
            Bucket="media", Key="projects/1/media/a.jpg", Body=b"abc", ContentType="image/jpeg"
        )
        self.s3.generate_presigned_url.return_value = "https://signed"
        self.assertEqual(self.storage.url_for("projects/1/media/a.jpg", 60), "https://signed")
        kwargs = self.s3.generate_presigned_url.call_args.kwargs
        self.assertEqual(kwargs["ExpiresIn"], 60)

    def test_missing_key(self):
        self.s3.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )
        with self.assertRaises(FileNotFoundError):
            self.storage.get_bytes("projects/1/media/missing.jpg")


class InMemoryCacheTests(unittest.TestCase):
    @patch("project_tracker.cache.time.time")
    def test_entries_expire(self, mock_time):
        cache = InMemoryCache()
        mock_time.return_value = 1000.0
        cache.set("k", "v", 60)
        self.assertEqual(cache.get("k"), "v")
        mock_time.return_value = 1061.0
        self.assertIsNone(cache.get("k"))
        self.assertIsNone(cache.get("other"))


class RedisCacheTests(unittest.TestCase):
    @patch("project_tracker.cache.redis.Redis.from_url")
    def test_get_and_set_use_prefix(self, mock_from_url):
        client = mock_from_url.return_value
        client.get.return_value = b"cached"
        cache = RedisCache(url="redis://localhost:6379/0", key_prefix="t:")
        self.assertEqual(cache.get("weather"), "cached")
        client.get.assert_called_once_with("t:weather")
        cache.set("weather", "{}", 30)
        client.setex.assert_called_once_with("t:weather", 30, "{}")

    @patch("project_tracker.cache.redis.Redis.from_url")
    def test_connection_errors_are_misses(self, mock_from_url):
        mock_from_url.return_value.get.side_effect = redis_exceptions.ConnectionError("reset")
        cache = RedisCache(url="redis://localhost:6379/0")
        with self.assertLogs("project_tracker.cache", level="WARNING"):
            self.assertIsNone(cache.get("weather"))
        self.assertEqual(mock_from_url.call_count, 2)


if __name__ == "__main__":
    unittest.main()
