"""Environment variable accessors handed to service start functions."""

from .reader import EnvNamespace, EnvVar, EnvVarError

envs = EnvNamespace()

__all__ = ["EnvNamespace", "EnvVar", "EnvVarError", "envs"]
