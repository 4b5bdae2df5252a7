# tests/unit/storage/test_unit_instance_store.py — v2
"""Tests for storage/instance_store.py — state lifecycle and artifact archiving."""

from __future__ import annotations

import json

import pytest

from mailflow.core.errors import (
    ArtifactNotFound,
    ConfigMismatch,
    InstanceNotFound,
    InvalidInstanceConfig,
    InvalidInstanceId,
    StateDocumentError,
)


class TestLocate:
    def test_existing_instance(self, store, instance_root):
        assert store.locate("acme-launch") == instance_root

    @pytest.mark.parametrize("bad", ["", "../etc", "a/b", ".hidden", "x..y"])
    def test_invalid_ids_rejected(self, store, bad):
        with pytest.raises(InvalidInstanceId):
            store.locate(bad)

    def test_missing_folder(self, store):
        with pytest.raises(InstanceNotFound):
            store.locate("nobody")


class TestLoadConfig:
    @pytest.mark.asyncio
    async def test_missing_config_is_empty(self, store, make_instance):
        root = make_instance(config=None)
        config = await store.load_config(root)
        assert config.instance_id is None
        assert config.review is None
        assert not config.has_recipients

    @pytest.mark.asyncio
    async def test_invalid_json(self, store, make_instance):
        root = make_instance(config=None)
        (root / "config.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidInstanceConfig):
            await store.load_config(root)

    @pytest.mark.asyncio
    async def test_non_utf8_config(self, store, make_instance):
        root = make_instance(config=None)
        (root / "config.json").write_bytes(b'{"email_subject": "\xff\xfe"}')
        with pytest.raises(InvalidInstanceConfig):
            await store.load_config(root)

    @pytest.mark.asyncio
    async def test_legacy_keys(self, store, make_instance):
        root = make_instance(config={
            "SENDER_EMAIL": "old@acme.test",
            "EMAIL_SUBJECT": "Legacy",
            "to": "a@x.test, b@x.test",
            "human-in-the-loop": {"enable": False},
        })
        config = await store.load_config(root)
        assert config.sender_email == "old@acme.test"
        assert config.email_subject == "Legacy"
        assert config.to == ["a@x.test", "b@x.test"]
        assert config.review is not None
        assert config.review.enable is False


class TestActivate:
    @pytest.mark.asyncio
    async def test_creates_active_state(self, store, instance_root, read_state):
        config, handle = await store.activate("acme-launch")
        state = read_state(instance_root)
        assert state["status"] == "active"
        assert state["started_at"]
        assert state["finished_at"] is None
        assert config.email_subject == "Our spring launch"
        assert handle.root == instance_root
        assert (instance_root / "artifacts" / "tmp").is_dir()
        assert "state - active" in (instance_root / "logs" / "run.log").read_text()

    @pytest.mark.asyncio
    async def test_clears_error_keeps_history(self, store, instance_root, read_state):
        _, handle = await store.activate("acme-launch")
        await store.record_progress(handle, "first run")
        await store.finalize(handle, "abort", last_error="boom", last_html_path="artifacts/email.html")

        await store.activate("acme-launch")
        state = read_state(instance_root)
        assert state["status"] == "active"
        assert state["last_error"] is None
        assert state["finished_at"] is None
        assert state["last_html_path"] == "artifacts/email.html"
        assert [m for _, m in state["progress"]] == ["first run"]

    @pytest.mark.asyncio
    async def test_mismatch_writes_nothing(self, store, make_instance, instance_config):
        root = make_instance(config={**instance_config, "instance_id": "someone-else"})
        with pytest.raises(ConfigMismatch) as exc_info:
            await store.activate("acme-launch")
        assert exc_info.value.declared == "someone-else"
        assert not (root / "meta.json").exists()

    @pytest.mark.asyncio
    async def test_replaces_corrupt_state(self, store, instance_root, read_state):
        (instance_root / "meta.json").write_text("garbage", encoding="utf-8")
        await store.activate("acme-launch")
        assert read_state(instance_root)["status"] == "active"


class TestStateDocument:
    @pytest.mark.asyncio
    async def test_load_state_missing(self, store, instance_root):
        with pytest.raises(StateDocumentError):
            await store.load_state(store.handle("acme-launch"))

    @pytest.mark.asyncio
    async def test_progress_is_ordered_and_appended(self, store, instance_root):
        _, handle = await store.activate("acme-launch")
        for message in ("one", "two", "three"):
            await store.record_progress(handle, message)
        state = await store.load_state(handle)
        assert [m for _, m in state.progress] == ["one", "two", "three"]
        assert state.latest_progress[1] == "three"

    @pytest.mark.asyncio
    async def test_finished_keeps_tolerated_error(self, store, instance_root):
        _, handle = await store.activate("acme-launch")
        await store.update(handle, last_error="hitl_http_503")
        state = await store.finalize(handle, "finished", last_send_id="msg-1")
        assert state.status == "finished"
        assert state.last_error == "hitl_http_503"
        assert state.last_send_id == "msg-1"
        assert state.finished_at

    @pytest.mark.asyncio
    async def test_abort_records_error(self, store, instance_root):
        _, handle = await store.activate("acme-launch")
        state = await store.finalize(handle, "abort", last_error="no_recipients_configured")
        assert state.status == "abort"
        assert state.last_error == "no_recipients_configured"

    @pytest.mark.asyncio
    async def test_unknown_keys_survive(self, store, instance_root):
        _, handle = await store.activate("acme-launch")
        data = json.loads((instance_root / "meta.json").read_text())
        data["owner"] = "marketing"
        (instance_root / "meta.json").write_text(json.dumps(data))
        await store.record_progress(handle, "still here")
        assert json.loads((instance_root / "meta.json").read_text())["owner"] == "marketing"

    @pytest.mark.asyncio
    async def test_unencodable_progress_never_raises(self, store, instance_root, read_state):
        _, handle = await store.activate("acme-launch")
        await store.record_progress(handle, "hitl input: \ud800 add a CTA")
        await store.record_progress(handle, "after")
        state = read_state(instance_root)
        assert state["status"] == "active"
        assert state["progress"][-1][1] == "after"


class TestArtifacts:
    @pytest.mark.asyncio
    async def test_write_archives_previous_versions(self, store, instance_root):
        target = instance_root / "artifacts" / "email.html"
        await store.write_artifact(target, "<p>v1</p>")
        await store.write_artifact(target, "<p>v2</p>")
        await store.write_artifact(target, "<p>v3</p>")

        assert target.read_text() == "<p>v3</p>"
        assert (instance_root / "artifacts" / "email-1.html").read_text() == "<p>v1</p>"
        assert (instance_root / "artifacts" / "email-2.html").read_text() == "<p>v2</p>"

    @pytest.mark.asyncio
    async def test_read_missing(self, store, instance_root):
        with pytest.raises(ArtifactNotFound):
            await store.read_artifact(instance_root / "artifacts" / "nope.html")

    @pytest.mark.asyncio
    async def test_read_roundtrip_utf8(self, store, instance_root):
        target = instance_root / "artifacts" / "email.html"
        await store.write_artifact(target, "<p>Grüße</p>")
        assert await store.read_artifact(target) == "<p>Grüße</p>"
        assert await store.artifact_exists(target)

    @pytest.mark.asyncio
    async def test_inline_artifact_goes_to_tmp(self, store, instance_root):
        tmp_dir = instance_root / "artifacts" / "tmp"
        path = await store.write_inline_artifact(tmp_dir, "<p>inline</p>")
        assert path.parent == tmp_dir
        assert path.name.startswith("email-")
        assert path.read_text() == "<p>inline</p>"
