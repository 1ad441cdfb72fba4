from __future__ import annotations

import base64
import binascii
import logging
import re
from urllib.parse import urlsplit, urlunsplit, unquote

import httpx
from pydantic import ValidationError

from networth.schemas import AccountSet

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500
HTML_TAG_PATTERN = re.compile(r"<[^>]*>")
CREDENTIALS_PATTERN = re.compile(r"//[^/@]*@")
HTML_ESCAPES = (
	("&", "&amp;"),
	("<", "&lt;"),
	(">", "&gt;"),
	('"', "&quot;"),
	("'", "&#x27;"),
	("/", "&#x2F;"),
)


class AccountFetchError(RuntimeError):
	"""Raised when the aggregation service cannot return an account set."""


class AuthError(AccountFetchError):
	"""Raised when the service rejects the stored credentials."""


class QuotaError(AccountFetchError):
	"""Raised when the service refuses the request for payment or quota reasons."""


class UpstreamError(AccountFetchError):
	def __init__(self, message: str, status_code: int | None = None) -> None:
		super().__init__(message)
		self.status_code = status_code


def sanitize_error_message(message: str) -> str:
	"""Strip markup, cap the length, and escape HTML-significant characters."""
	sanitized = HTML_TAG_PATTERN.sub("", message)
	if len(sanitized) > MAX_ERROR_MESSAGE_LENGTH:
		sanitized = sanitized[:MAX_ERROR_MESSAGE_LENGTH] + "..."

	for character, replacement in HTML_ESCAPES:
		sanitized = sanitized.replace(character, replacement)
	return sanitized


def mask_credentials(url: str) -> str:
	return CREDENTIALS_PATTERN.sub("//***@", url)


def split_access_url(access_url: str) -> tuple[str, tuple[str, str]]:
	"""Separate the embedded basic-auth credentials from an access URL."""
	parts = urlsplit(access_url.strip())
	if parts.scheme not in {"http", "https"} or not parts.hostname:
		raise ValueError("Access URL must be an http(s) URL.")
	if not parts.username or parts.password is None:
		raise ValueError("Access URL must embed username and password credentials.")

	netloc = parts.hostname
	if ":" in netloc:
		netloc = f"[{netloc}]"
	if parts.port is not None:
		netloc = f"{netloc}:{parts.port}"

	base_url = urlunsplit((parts.scheme, netloc, parts.path, parts.query, "")).rstrip("/")
	return base_url, (unquote(parts.username), unquote(parts.password))


def decode_setup_token(setup_token: str) -> str:
	try:
		claim_url = base64.b64decode(setup_token.strip(), validate=True).decode("utf-8")
	except (binascii.Error, UnicodeDecodeError) as exc:
		raise ValueError("Setup token is not valid base64.") from exc

	if not claim_url.startswith(("http://", "https://")):
		raise ValueError("Setup token does not decode to a claim URL.")
	return claim_url


class SimpleFinClient:
	def __init__(
		self,
		access_url: str,
		timeout: float = 30.0,
		transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self.base_url, self._credentials = split_access_url(access_url)
		self.timeout = timeout
		self._transport = transport

	def _build_client(self) -> httpx.AsyncClient:
		return httpx.AsyncClient(
			auth=httpx.BasicAuth(*self._credentials),
			timeout=self.timeout,
			transport=self._transport,
		)

	async def fetch_accounts(self) -> AccountSet:
		"""Fetch balances for every connected account, without transactions."""
		try:
			async with self._build_client() as client:
				response = await client.get(
					f"{self.base_url}/accounts",
					params={"balances-only": "1"},
				)
		except httpx.HTTPError as exc:
			raise UpstreamError(f"Account request failed: {exc}") from exc

		if response.status_code == 403:
			raise AuthError("Authentication failed. Access may have been revoked.")
		if response.status_code == 402:
			raise QuotaError("Payment required.")
		if not response.is_success:
			raise UpstreamError(
				f"Failed to fetch accounts: {response.status_code}",
				status_code=response.status_code,
			)

		try:
			account_set = AccountSet.model_validate(response.json())
		except (ValueError, ValidationError) as exc:
			raise UpstreamError(
				"Account response was not a valid account set.",
				status_code=response.status_code,
			) from exc

		return account_set.model_copy(
			update={"errors": [sanitize_error_message(error) for error in account_set.errors]},
		)


async def claim_access_url(
	setup_token: str,
	timeout: float = 30.0,
	transport: httpx.AsyncBaseTransport | None = None,
) -> str:
	"""Exchange a one-time setup token for a long-lived access URL."""
	claim_url = decode_setup_token(setup_token)
	logger.info("Claiming token from %s", mask_credentials(claim_url))

	try:
		async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
			response = await client.post(claim_url, headers={"Content-Length": "0"})
	except httpx.HTTPError as exc:
		raise UpstreamError(f"Token claim request failed: {exc}") from exc

	if response.status_code == 403:
		raise AuthError(
			"Failed to claim token (403 Forbidden). "
			"This token may have already been claimed by someone else, or it has expired. "
			"If you did not claim this token, it may be compromised. "
			"Generate a new token and disable the old one if possible.",
		)
	if not response.is_success:
		raise UpstreamError(
			f"Failed to claim token: {response.status_code}",
			status_code=response.status_code,
		)

	access_url = response.text.strip()
	split_access_url(access_url)
	return access_url
