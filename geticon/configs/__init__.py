"""Configuration for geticon"""

from dynaconf import Dynaconf, Validator

# Validators for GetIcon settings.
_validators = [
    Validator("deployment.canary", is_type_of=bool),
    Validator("logging.format", is_in=["mozlog", "pretty"]),
    Validator("logging.level", is_in=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    Validator("logging.can_propagate", is_type_of=bool),
    Validator("metrics.dev_logger", is_type_of=bool),
    Validator("metrics.host", is_type_of=str),
    Validator("metrics.port", gte=0, is_type_of=int),
    Validator("sentry.env", is_in=["prod", "stage", "dev"]),
    Validator("sentry.mode", is_in=["disabled", "release", "debug"]),
    Validator("sentry.traces_sample_rate", gte=0, lte=1),
    # Responses are advertised as cacheable for exactly as long as the server keeps them.
    Validator("cache.ttl_sec", is_type_of=int, eq=3600, must_exist=True),
    Validator("cache.max_entries", is_type_of=int, gt=0, must_exist=True),
    Validator("fetch.connect_timeout_sec", is_type_of=float, gt=0, lte=30.0),
    Validator("fetch.request_timeout_sec", is_type_of=float, gt=0, lte=60.0),
    Validator("fetch.pool_timeout_sec", is_type_of=float, gt=0),
    Validator("fetch.max_connections", is_type_of=int, gt=0),
    Validator("fetch.max_redirects", is_type_of=int, gte=0, lte=20),
    Validator("fetch.max_body_bytes", is_type_of=int, gt=0),
    Validator("fetch.verify_tls", is_type_of=bool, must_exist=True),
    Validator("resolver.batch_size", is_type_of=int, gte=1, lte=16),
    Validator("web.api.v1.url_character_max", is_type_of=int, gt=0, lte=4096),
    Validator("web.api.v1.size_max", is_type_of=int, gt=0),
]

# `root_path` = The root path for Dynaconf, DO NOT CHANGE.
# `envvar_prefix` = Export envvars with `export GETICON_FOO=bar`.
# `settings_files` = Load these files in the order.
# `environments` = Enable layered environments such as `development`, `production`, `testing` etc.
# `env_switcher` = Switch environments by `export GETICON_ENV=production`. Default: `development`.
# `merge_enabled` = Merge environment tables into the `[default]` ones key by key.
# `validators` = Define validators for GetIcon settings.

settings = Dynaconf(
    root_path="geticon",
    envvar_prefix="GETICON",
    settings_files=[
        "configs/default.toml",
        "configs/development.toml",
        "configs/production.toml",
        "configs/testing.toml",
    ],
    environments=True,
    env_switcher="GETICON_ENV",
    merge_enabled=True,
    validators=_validators,
)
