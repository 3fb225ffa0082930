import pytest

from era import main as main_mod
from era.config import Settings
from era.errors import EmailError


class FakeGenerationClient:
    def __init__(self, raw=None, exc=None, converted=None):
        self.raw = raw
        self.exc = exc
        self.converted = converted
        self.generate_calls = []
        self.convert_calls = []

    def generate(self, image_bytes, mime_type, prompt):
        self.generate_calls.append({"image_bytes": image_bytes, "mime_type": mime_type, "prompt": prompt})
        if self.exc is not None:
            raise self.exc
        return self.raw

    def convert(self, code):
        self.convert_calls.append(code)
        if self.converted is None:
            raise RuntimeError("conversion unavailable")
        return self.converted

    def status(self):
        return {"provider": "v0", "mode": "chat", "model": "fake", "has_token": True}


class FakeMailer:
    def __init__(self, fail=False):
        self.fail = fail
        self.generation = []
        self.shared = []

    def send_generation(self, user_email, prompt, code):
        if self.fail:
            raise EmailError("smtp down")
        self.generation.append({"user_email": user_email, "prompt": prompt, "code": code})

    def send_shared_example(self, your_email, description, attachment_path=None, attachment_name=None, content_type=None):
        if self.fail:
            raise EmailError("smtp down")
        self.shared.append(
            {
                "your_email": your_email,
                "description": description,
                "attachment_exists": bool(attachment_path and attachment_path.exists()),
                "attachment_bytes": attachment_path.read_bytes() if attachment_path else None,
                "attachment_name": attachment_name,
                "content_type": content_type,
            }
        )


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(main_mod, "settings", Settings(upload_dir=path, max_upload_bytes=1024))
    return path


@pytest.fixture
def fake_mailer(monkeypatch):
    mailer = FakeMailer()
    monkeypatch.setattr(main_mod, "mailer", mailer)
    return mailer
