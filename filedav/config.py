"""
Configuration for the client and for accounts.

Settings are taken from, in order of precedence, keyword arguments,
environmental variables (prefixed with FILEDAV_) and a section of a
config file.  A config file is a json (or yaml, if pyyaml is installed)
dict of sections:

    {
        "default": {"timeout": 20, "ssl_verify_cert": "/etc/ssl/my-ca.pem"},
        "work": {
            "inherits": "default",
            "url": "https://cloud.example.com/remote.php/dav/files/bob/",
            "username": "bob",
            "password": "secret"
        }
    }
"""

import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

from filedav.account import SimpleAccount
from filedav.webdav import WebDAV


log = logging.getLogger(__name__)

## config file keys accepted by the WebDAV constructor
CLIENT_KEYS = ("timeout", "ssl_verify_cert", "headers", "max_workers", "huge_tree")


def config_section(config: Dict[str, Any], section: str = "default") -> Dict[str, Any]:
    """Return section, with everything it inherits from filled in"""
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def read_config(fn: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Read a config file.  Without fn the default locations are tried
    and None is returned if there is no config file.  A broken config
    file is logged and ignored.
    """
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config"
        for config_file in (
            f"{cfgdir}/filedav/filedav.conf",
            f"{cfgdir}/filedav/filedav.yaml",
            f"{cfgdir}/filedav/filedav.json",
            "/etc/filedav/filedav.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, yaml is an optional dependency
            try:
                import yaml
            except ImportError:
                log.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )
                return {}
            try:
                with open(fn, "rb") as config_file:
                    return yaml.safe_load(config_file) or {}
            except yaml.YAMLError:
                log.error(
                    f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                )
    except FileNotFoundError:
        log.debug(f"no config file {fn}")
    except (OSError, ValueError):
        log.error(f"error in config file {fn}.  It will be ignored", exc_info=True)
    return {}


def _env_settings() -> Dict[str, Any]:
    settings: Dict[str, Any] = {}
    if os.environ.get("FILEDAV_TIMEOUT"):
        settings["timeout"] = float(os.environ["FILEDAV_TIMEOUT"])
    if os.environ.get("FILEDAV_MAX_WORKERS"):
        settings["max_workers"] = int(os.environ["FILEDAV_MAX_WORKERS"])
    verify = os.environ.get("FILEDAV_SSL_VERIFY_CERT")
    if verify:
        if verify.lower() in ("0", "false", "no"):
            settings["ssl_verify_cert"] = False
        elif verify.lower() in ("1", "true", "yes"):
            settings["ssl_verify_cert"] = True
        else:
            settings["ssl_verify_cert"] = verify
    return settings


def _section(config_file: Optional[str], section: str) -> Dict[str, Any]:
    config = read_config(config_file)
    if not config:
        return {}
    return config_section(config, section)


def get_webdav(
    config_file: Optional[str] = None,
    config_section_name: str = "default",
    **kwargs: Any,
) -> WebDAV:
    """
    Build a WebDAV client.  kwargs go to the WebDAV constructor and take
    precedence over FILEDAV_TIMEOUT, FILEDAV_MAX_WORKERS and
    FILEDAV_SSL_VERIFY_CERT, which take precedence over the config file.
    """
    settings = {
        k: v
        for k, v in _section(config_file, config_section_name).items()
        if k in CLIENT_KEYS
    }
    settings.update(_env_settings())
    settings.update(kwargs)
    log.debug(f"client settings: {sorted(settings)}")
    return WebDAV(**settings)


def get_account(
    url: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    config_file: Optional[str] = None,
    config_section_name: str = "default",
) -> Tuple[SimpleAccount, Optional[str]]:
    """
    Return an account and its password.  Falls back to FILEDAV_URL,
    FILEDAV_USERNAME and FILEDAV_PASSWORD, then to the url, username
    and password keys of the config section.  Nothing is validated
    here; unusable values surface as InvalidCredentialsError when the
    account is used.
    """
    section = _section(config_file, config_section_name)
    url = url or os.environ.get("FILEDAV_URL") or section.get("url")
    username = username or os.environ.get("FILEDAV_USERNAME") or section.get("username")
    if password is None:
        password = os.environ.get("FILEDAV_PASSWORD", section.get("password"))
    return SimpleAccount(username=username, base_url=url), password
