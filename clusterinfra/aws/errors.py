"""Classification of botocore errors.

ClientErrors are classified by their provider error code. Other botocore
failures never reached the provider: connection and HTTP errors are
transient, missing credentials are a permission problem.
"""

from __future__ import annotations

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from ..errors import (
    NotFoundError,
    PermissionDeniedError,
    ProviderError,
    TransientProviderError,
)

NOT_FOUND_CODES = {
    "InvalidVpcID.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidRouteTableID.NotFound",
    "InvalidVolume.NotFound",
    "InvalidInternetGatewayID.NotFound",
    "InvalidGroup.NotFound",
    "InvalidInstanceID.NotFound",
    "InvalidAssociationID.NotFound",
    "NoSuchEntity",
    "LoadBalancerNotFound",
    "AccessPointNotFound",
    "ResourceNotFoundException",
}

PERMISSION_CODES = {
    "UnauthorizedOperation",
    "AccessDenied",
    "AccessDeniedException",
    "AuthFailure",
}

TRANSIENT_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "InternalError",
    "InternalFailure",
    "RequestTimeout",
}

# Everything a boto3 client call can raise
BOTO_ERRORS = (ClientError, BotoCoreError)


def error_code(err: Exception) -> str:
    """Return the provider error code of a ClientError ("Unknown" if absent).

    Other botocore errors have no provider code; their class name is used.
    """
    if not isinstance(err, ClientError):
        return type(err).__name__
    return err.response.get("Error", {}).get("Code", "Unknown")


def error_message(err: ClientError) -> str:
    return err.response.get("Error", {}).get("Message", str(err))


def is_not_found(err: Exception) -> bool:
    """True when the error means the resource does not exist."""
    if not isinstance(err, ClientError):
        return False
    code = error_code(err)
    return code in NOT_FOUND_CODES or code.endswith(".NotFound")


def translate_client_error(err: ClientError, context: str = "") -> ProviderError:
    """Translate a ClientError into the clusterinfra error taxonomy.

    Args:
        err: Error raised by a boto3 client
        context: Short description of what was being done (e.g. "listing VPCs")

    Returns:
        A ProviderError subclass chosen by error code
    """
    code = error_code(err)
    operation = err.operation_name
    message = f"{context}: {code}: {error_message(err)}" if context else f"{code}: {error_message(err)}"

    if is_not_found(err):
        return NotFoundError(message, code=code, operation=operation)
    if code in PERMISSION_CODES:
        return PermissionDeniedError(message, code=code, operation=operation)
    if code in TRANSIENT_CODES:
        return TransientProviderError(message, code=code, operation=operation)
    return ProviderError(message, code=code, operation=operation)


def translate_boto_error(err: Exception, context: str = "") -> ProviderError:
    """Translate any boto3 client failure into the clusterinfra error taxonomy.

    Args:
        err: ClientError or BotoCoreError raised by a boto3 client
        context: Short description of what was being done

    Returns:
        A ProviderError subclass
    """
    if isinstance(err, ClientError):
        return translate_client_error(err, context)

    code = type(err).__name__
    message = f"{context}: {code}: {err}" if context else f"{code}: {err}"
    if isinstance(err, (BotoConnectionError, HTTPClientError)):
        return TransientProviderError(message, code=code)
    if isinstance(err, (NoCredentialsError, PartialCredentialsError)):
        return PermissionDeniedError(message, code=code)
    return ProviderError(message, code=code)
