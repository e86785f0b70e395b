"""AWS session helpers.

This module centralizes creation of the boto3 Lake Formation client and
turns the usual credential and region misconfigurations into one error
type with an actionable message.
"""

import boto3
from botocore.exceptions import (
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProfileNotFound,
)


class AuthError(RuntimeError):
    """Raised when an AWS session cannot be established."""


def _format_auth_error(exc: Exception, profile: str | None) -> str:
    """Return a user-friendly auth error message."""
    if isinstance(exc, ProfileNotFound):
        return (
            f"AWS profile '{profile}' was not found.\n"
            "Configure it with:\n"
            f"  $ aws configure --profile {profile}"
        )
    if isinstance(exc, NoRegionError):
        return "No AWS region configured. Pass --region or set AWS_REGION."
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        cmd = "aws sso login"
        if profile:
            cmd = f"{cmd} --profile {profile}"
        return f"AWS credentials are missing or incomplete.\nAuthenticate with:\n  $ {cmd}"
    return f"AWS authentication failed: {exc}"


def _sanitize_region(region: str | None) -> str | None:
    """Normalize a region name (trim whitespace, lower-case); empty means unset."""
    if not region:
        return None
    return region.strip().lower() or None


def get_client(profile: str | None = None, region: str | None = None):
    """
    Create and return a boto3 Lake Formation client.

    If a profile is provided, it is resolved from the shared AWS config
    (~/.aws/config, ~/.aws/credentials); otherwise boto3's default
    credential chain applies.
    """
    try:
        session = boto3.Session(profile_name=profile, region_name=_sanitize_region(region))
        client = session.client("lakeformation")
        if session.get_credentials() is None:
            raise NoCredentialsError()
    except (ProfileNotFound, NoRegionError, NoCredentialsError, PartialCredentialsError) as exc:
        raise AuthError(_format_auth_error(exc, profile)) from exc
    return client
