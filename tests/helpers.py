import datetime
import io
import os
from types import SimpleNamespace

from minio.error import MinioException, S3Error
from PIL import Image


def make_image_bytes(width=320, height=240, fmt="JPEG", mode="RGB", color=(200, 40, 40)):
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    im = Image.new(mode, (width, height), color)
    out = io.BytesIO()
    im.save(out, format=fmt)
    return out.getvalue()


def make_noise_jpeg(width, height, quality=95):
    im = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    out = io.BytesIO()
    im.save(out, format="JPEG", quality=quality)
    return out.getvalue()


def pieces(data: bytes, size: int):
    """Split data into pieces, like an upload arriving off the network"""
    return [data[i : i + size] for i in range(0, len(data), size)]


class NoSuchKey(S3Error):
    code = "NoSuchKey"

    def __init__(self, object_name):
        Exception.__init__(self, object_name)

    def __str__(self):
        return f"NoSuchKey: {self.args[0]}"

    __repr__ = __str__


class FakeResponse:
    def __init__(self, data):
        self.data = data
        self.closed = False

    def read(self):
        return self.data

    def close(self):
        self.closed = True

    def release_conn(self):
        pass


class FakeMinio:
    """Dict-backed stand-in for minio.Minio, keyword arguments only"""

    def __init__(self):
        self.buckets = set()
        self.objects = {}
        self.modified = {}
        self.fail_on_put = None
        self.fail_reads = False
        self.puts = 0

    def bucket_exists(self, *, bucket_name):
        return bucket_name in self.buckets

    def make_bucket(self, *, bucket_name):
        self.buckets.add(bucket_name)

    def put_object(self, *, bucket_name, object_name, data, length, **kwargs):
        self.puts += 1
        if self.fail_on_put is not None and self.puts >= self.fail_on_put:
            raise OSError("connection reset by peer")
        self.objects[(bucket_name, object_name)] = data.read(length)
        self.modified[(bucket_name, object_name)] = datetime.datetime.now(
            datetime.timezone.utc
        )

    def _lookup(self, bucket_name, object_name):
        if self.fail_reads:
            raise MinioException("service unavailable")
        try:
            return self.objects[(bucket_name, object_name)]
        except KeyError:
            raise NoSuchKey(object_name)

    def get_object(self, *, bucket_name, object_name):
        return FakeResponse(self._lookup(bucket_name, object_name))

    def stat_object(self, *, bucket_name, object_name):
        return SimpleNamespace(size=len(self._lookup(bucket_name, object_name)))

    def list_objects(self, *, bucket_name, prefix="", recursive=False):
        found = {}
        for (bucket, key) in sorted(self.objects):
            if bucket != bucket_name or not key.startswith(prefix):
                continue
            rest = key[len(prefix) :]
            if not recursive and "/" in rest:
                name = prefix + rest.split("/")[0] + "/"
                found.setdefault(
                    name, SimpleNamespace(object_name=name, is_dir=True, last_modified=None)
                )
            else:
                found[key] = SimpleNamespace(
                    object_name=key, is_dir=False, last_modified=self.modified[(bucket, key)]
                )
        return list(found.values())

    def remove_object(self, *, bucket_name, object_name):
        self.objects.pop((bucket_name, object_name), None)
        self.modified.pop((bucket_name, object_name), None)

    def backdate(self, seconds):
        """Age every stored object"""
        delta = datetime.timedelta(seconds=seconds)
        for key in self.modified:
            self.modified[key] -= delta

    def keys(self):
        return sorted(key for (_, key) in self.objects)
