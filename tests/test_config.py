"""
Config system (config.py).

Tests ConfigLoader, load_session_config precedence and create_adapter.
"""

import logging
from datetime import timedelta

import pytest

from sigil.config import ConfigLoader, SessionConfig, create_adapter, load_session_config
from sigil.sessions import KeyRing, SessionAdapter, SessionPolicy
from sigil.sessions.faults import SessionConfigFault

SECRET = "test-secret-key-0123456789abcdef"
OTHER_SECRET = "other-secret-key-fedcba9876543210"


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_prefix_filter(self):
        loader = ConfigLoader()
        loader.load_mapping({"SIGIL_MAX_SIZE": "2048", "HOME": "/root"})
        assert loader.config_data == {"max_size": 2048}

    def test_nested_keys(self):
        loader = ConfigLoader()
        loader.load_mapping({"SIGIL_COOKIE__NAME": "cart", "SIGIL_COOKIE__SECURE": "false"})
        assert loader.config_data == {"cookie": {"name": "cart", "secure": False}}

    def test_custom_prefix(self):
        loader = ConfigLoader(env_prefix="SHOP_")
        loader.load_mapping({"SHOP_SALT": "cart", "SIGIL_SALT": "other"})
        assert loader.config_data == {"salt": "cart"}

    @pytest.mark.parametrize("raw,parsed", [
        ("42", 42),
        ("true", True),
        ("Yes", True),
        ("off", False),
        ("none", None),
        ("", None),
        ("text", "text"),
    ])
    def test_parse_value(self, raw, parsed):
        assert ConfigLoader._parse_value(raw) == parsed

    def test_raw_keys_not_coerced(self):
        loader = ConfigLoader()
        loader.load_mapping({
            "SIGIL_SECRET_KEY": "12345678901234567890",
            "SIGIL_COOKIE__SAMESITE": "none",
        })
        assert loader.config_data["secret_key"] == "12345678901234567890"
        assert loader.config_data["cookie"]["samesite"] == "none"

    def test_merge_is_deep(self):
        loader = ConfigLoader()
        loader.load_mapping({"SIGIL_COOKIE__NAME": "cart", "SIGIL_COOKIE__PATH": "/shop"})
        loader.merge({"cookie": {"name": "basket"}})
        assert loader.config_data["cookie"] == {"name": "basket", "path": "/shop"}

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SIGIL_MAX_SIZE=1024\nSIGIL_COOKIE__NAME=cart\nOTHER=1\n")
        loader = ConfigLoader()
        loader.load_env_file(str(env_file))
        assert loader.config_data == {"max_size": 1024, "cookie": {"name": "cart"}}

    def test_missing_env_file(self, tmp_path):
        with pytest.raises(SessionConfigFault):
            ConfigLoader().load_env_file(str(tmp_path / "missing.env"))


# ============================================================================
# load_session_config
# ============================================================================

class TestLoadSessionConfig:

    def test_defaults(self):
        config = load_session_config(environ={"SIGIL_SECRET_KEY": SECRET})
        assert isinstance(config, SessionConfig)
        assert len(config.keys) == 1
        assert config.policy == SessionPolicy()

    def test_key_list_newest_first(self):
        config = load_session_config(environ={"SIGIL_SECRET_KEYS": f"{SECRET}, {OTHER_SECRET}"})
        assert list(config.keys) == list(KeyRing([SECRET, OTHER_SECRET]))

    def test_missing_secret(self):
        with pytest.raises(SessionConfigFault):
            load_session_config(environ={})

    def test_policy_from_environment(self):
        config = load_session_config(environ={
            "SIGIL_SECRET_KEY": SECRET,
            "SIGIL_MAX_SIZE": "2048",
            "SIGIL_ALGORITHM": "sha512",
            "SIGIL_REISSUE_ON_ROTATION": "true",
            "SIGIL_COOKIE__NAME": "cart",
            "SIGIL_COOKIE__SAMESITE": "strict",
            "SIGIL_COOKIE__MAX_AGE": "3600",
        })
        policy = config.policy
        assert policy.max_size == 2048
        assert policy.algorithm == "sha512"
        assert policy.reissue_on_rotation is True
        assert policy.cookie.name == "cart"
        assert policy.cookie.samesite == "strict"
        assert policy.cookie.max_age == timedelta(hours=1)

    def test_precedence(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            f"SIGIL_SECRET_KEY={SECRET}\n"
            "SIGIL_MAX_SIZE=1024\n"
            "SIGIL_COOKIE__NAME=from_file\n"
            "SIGIL_COOKIE__PATH=/file\n"
        )
        config = load_session_config(
            env_file=str(env_file),
            environ={"SIGIL_COOKIE__NAME": "from_env", "SIGIL_MAX_SIZE": "2048"},
            overrides={"max_size": 512},
        )
        assert config.policy.max_size == 512
        assert config.policy.cookie.name == "from_env"
        assert config.policy.cookie.path == "/file"

    def test_invalid_value(self):
        with pytest.raises(SessionConfigFault):
            load_session_config(environ={"SIGIL_SECRET_KEY": SECRET, "SIGIL_ALGORITHM": "md5"})

    def test_non_numeric_size(self):
        with pytest.raises(SessionConfigFault):
            load_session_config(environ={"SIGIL_SECRET_KEY": SECRET, "SIGIL_MAX_SIZE": "big"})

    def test_os_environ_default(self, monkeypatch):
        monkeypatch.setenv("SIGIL_SECRET_KEY", SECRET)
        monkeypatch.setenv("SIGIL_COOKIE__NAME", "from_os")
        assert load_session_config().policy.cookie.name == "from_os"

    def test_secrets_not_logged_or_repr(self, caplog):
        with caplog.at_level(logging.INFO, logger="sigil.config"):
            config = load_session_config(environ={"SIGIL_SECRET_KEY": SECRET})
        assert "Session config loaded" in caplog.text
        assert SECRET not in caplog.text
        assert SECRET not in repr(config)


# ============================================================================
# create_adapter
# ============================================================================

class TestCreateAdapter:

    def test_from_config(self):
        config = load_session_config(environ={"SIGIL_SECRET_KEY": SECRET, "SIGIL_COOKIE__NAME": "cart"})
        adapter = create_adapter(config)
        assert isinstance(adapter, SessionAdapter)
        assert adapter.cookie_name == "cart"

    def test_from_kwargs(self):
        adapter = create_adapter(environ={"SIGIL_SECRET_KEY": SECRET})
        session = adapter.begin_request(None)
        session.set("a", 1)
        token = adapter.finalize_response(session)
        assert SessionAdapter([SECRET]).begin_request(token).get("a") == 1

    def test_custom_logger(self):
        custom = logging.getLogger("shop.sessions")
        adapter = create_adapter(environ={"SIGIL_SECRET_KEY": SECRET}, logger=custom)
        assert adapter.logger is custom

    def test_max_size_unset_by_default(self):
        config = load_session_config(environ={"SIGIL_SECRET_KEY": SECRET})
        assert config.policy.max_size is None
        assert create_adapter(config).max_size == 3039
