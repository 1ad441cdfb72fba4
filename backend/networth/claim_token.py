from __future__ import annotations

import argparse
import asyncio
import re
from pathlib import Path

from networth.logging_config import setup_logging
from networth.services.simplefin import AccountFetchError, claim_access_url

ENV_KEY = "NETWORTH_ACCESS_URL"
ENV_LINE_PATTERN = re.compile(rf"^{ENV_KEY}=.*(?:\n|$)", re.MULTILINE)


def write_access_url(env_path: Path, access_url: str) -> None:
	"""Store the access URL in an env file, replacing any previous value."""
	env_content = env_path.read_text(encoding="utf-8") if env_path.exists() else ""
	env_content = ENV_LINE_PATTERN.sub("", env_content)
	if env_content and not env_content.endswith("\n"):
		env_content += "\n"

	env_content += f"{ENV_KEY}={access_url}\n"
	env_path.write_text(env_content, encoding="utf-8")


def main() -> None:
	parser = argparse.ArgumentParser(
		description="Exchange a one-time setup token for an access URL and save it.",
	)
	parser.add_argument("setup_token", help="Base64 setup token from the aggregation service.")
	parser.add_argument(
		"--env-file",
		type=Path,
		default=Path(".env"),
		help="Env file that receives NETWORTH_ACCESS_URL.",
	)
	args = parser.parse_args()

	setup_logging()
	try:
		access_url = asyncio.run(claim_access_url(args.setup_token))
	except (AccountFetchError, ValueError) as exc:
		parser.exit(1, f"Error: {exc}\n")

	write_access_url(args.env_file, access_url)
	print(f"Saved {ENV_KEY} to {args.env_file}. Start the server with: networth-server")


if __name__ == "__main__":
	main()
