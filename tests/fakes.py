"""In-memory stand-ins for the boto3 S3 client and the OS keychain."""
from datetime import datetime, timezone
import threading
import time


class FakeS3Client:
    """Serves one bucket from a dict of ``key -> bytes``."""

    def __init__(self, objects=None, *, page_size=1000, errors=None, list_responses=None, delete_delay=0.0):
        self.objects = dict(objects or {})
        self.content_types = {}
        self.page_size = page_size
        self.errors = errors or {}
        self.list_responses = list(list_responses) if list_responses is not None else None
        self.delete_delay = delete_delay
        self.last_modified = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.list_calls = []
        self.put_calls = []
        self.delete_calls = []
        self.presigned_calls = []
        self.active_deletes = 0
        self.max_active_deletes = 0
        self._lock = threading.Lock()

    def list_objects_v2(self, **kwargs):
        self.list_calls.append(kwargs)
        prefix = kwargs.get("Prefix", "")
        error = self.errors.get(("list_objects_v2", prefix))
        if error is not None:
            raise error
        if self.list_responses is not None:
            return self.list_responses.pop(0)

        delimiter = kwargs.get("Delimiter")
        items = {}
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest[: rest.index(delimiter) + 1]
                items[common] = "prefix"
            else:
                items[key] = "object"

        ordered = sorted(items)
        token = kwargs.get("ContinuationToken")
        if token:
            ordered = [value for value in ordered if value > token]
        page = ordered[: self.page_size]
        truncated = len(ordered) > len(page)

        response = {
            "Contents": [
                {"Key": value, "Size": len(self.objects[value]), "LastModified": self.last_modified}
                for value in page
                if items[value] == "object"
            ],
            "CommonPrefixes": [{"Prefix": value} for value in page if items[value] == "prefix"],
            "IsTruncated": truncated,
        }
        if truncated:
            response["NextContinuationToken"] = page[-1]
        return response

    def put_object(self, **kwargs):
        self.put_calls.append(kwargs)
        error = self.errors.get(("put_object", kwargs["Key"]))
        if error is not None:
            raise error
        self.objects[kwargs["Key"]] = bytes(kwargs["Body"])
        self.content_types[kwargs["Key"]] = kwargs.get("ContentType")

    def delete_object(self, **kwargs):
        key = kwargs["Key"]
        with self._lock:
            self.delete_calls.append(key)
            self.active_deletes += 1
            self.max_active_deletes = max(self.max_active_deletes, self.active_deletes)
        try:
            if self.delete_delay:
                time.sleep(self.delete_delay)
            error = self.errors.get(("delete_object", key))
            if error is not None:
                raise error
            with self._lock:
                self.objects.pop(key, None)
        finally:
            with self._lock:
                self.active_deletes -= 1

    def generate_presigned_url(self, client_method, Params=None, ExpiresIn=3600):
        params = Params or {}
        self.presigned_calls.append({"method": client_method, "params": params, "expires_in": ExpiresIn})
        error = self.errors.get(("generate_presigned_url", params.get("Key")))
        if error is not None:
            raise error
        return f"https://signed.example.com/{params['Bucket']}/{params['Key']}?X-Amz-Expires={ExpiresIn}"


class RecordingFactory:
    """Client factory that returns ``client`` and remembers how it was called."""

    def __init__(self, client):
        self.client = client
        self.calls = []

    def __call__(self, service_name, **kwargs):
        self.calls.append((service_name, kwargs))
        return self.client


class FakeKeychain:
    def __init__(self):
        self.secrets = {}
        self.set_calls = []
        self.delete_calls = []

    def get_secret(self, slot: str) -> str:
        return self.secrets.get(slot, "")

    def set_secret(self, slot: str, secret: str) -> None:
        self.set_calls.append((slot, secret))
        self.secrets[slot] = secret

    def delete_secret(self, slot: str) -> None:
        self.delete_calls.append(slot)
        self.secrets.pop(slot, None)
