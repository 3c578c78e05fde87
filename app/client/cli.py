"""Command-line front end for the E-Ballot API."""

from __future__ import annotations

import argparse
import getpass
import json
import os
import sys
from pathlib import Path

import httpx

from app.client.api import ApiError, BallotClient, RetryPolicy, probe_session
from app.client.dashboard import Dashboard, render_dashboard, render_results

DEFAULT_API_URL = os.environ.get("EBALLOT_API_URL", "http://localhost:5000")
DEFAULT_COOKIE_FILE = Path(
    os.environ.get("EBALLOT_COOKIE_FILE", Path.home() / ".eballot-cookies.json")
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Vote and follow results from the terminal.")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API base URL.")
    parser.add_argument(
        "--cookie-file",
        type=Path,
        default=DEFAULT_COOKIE_FILE,
        help="Where the session cookie is kept between runs.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    register = sub.add_parser("register", help="Create a local account.")
    register.add_argument("name")
    register.add_argument("email")

    login = sub.add_parser("login", help="Sign in with email and password.")
    login.add_argument("email")

    forgot = sub.add_parser("forgot", help="Request a password reset link.")
    forgot.add_argument("email")

    reset = sub.add_parser("reset", help="Set a new password with a reset token.")
    reset.add_argument("token")

    whoami = sub.add_parser("whoami", help="Show the signed-in user.")
    whoami.add_argument(
        "--wait",
        action="store_true",
        help="Keep probing while a fresh OAuth session propagates.",
    )

    sub.add_parser("candidates", help="List candidates and results.")
    sub.add_parser("voters", help="List voters, newest first.")

    profile = sub.add_parser("set-profile", help="Store your LinkedIn profile URL.")
    profile.add_argument("url")

    vote = sub.add_parser("vote", help="Cast your one vote.")
    vote.add_argument("candidate_id")

    sub.add_parser("dashboard", help="Show everything at once.")
    sub.add_parser("logout", help="End the session.")
    return parser.parse_args(argv)


def load_cookies(client: BallotClient, path: Path) -> None:
    if not path.exists():
        return
    for name, value in json.loads(path.read_text(encoding="utf-8")).items():
        client.cookies.set(name, value)


def save_cookies(client: BallotClient, path: Path) -> None:
    jar = {cookie.name: cookie.value for cookie in client.cookies.jar}
    path.write_text(json.dumps(jar), encoding="utf-8")
    path.chmod(0o600)


def _password(prompt: str = "Password: ") -> str:
    return getpass.getpass(prompt)


def run(args: argparse.Namespace, client: BallotClient) -> int:
    """Execute one command and return the process exit code."""
    command = args.command

    if command == "register":
        user = client.register(args.name, args.email, _password())
        print(f"Registered and signed in as {user['name']}")
    elif command == "login":
        user = client.login(args.email, _password())
        print(f"Signed in as {user['name']}")
    elif command == "forgot":
        result = client.forgot_password(args.email)
        print(result["message"])
        if result.get("reset_url"):
            print(result["reset_url"])
    elif command == "reset":
        result = client.reset_password(args.token, _password("New password: "))
        print(result["message"])
    elif command == "whoami":
        policy = RetryPolicy() if args.wait else RetryPolicy(max_attempts=1)
        user = probe_session(client, policy)
        if user is None:
            print("Not signed in")
            return 1
        print(f"{user['name']} <{user['email']}> via {user['provider']}")
    elif command == "candidates":
        print(render_results(client.candidates()))
    elif command == "voters":
        for voter in client.voters():
            print(f"{voter['name']}  {voter.get('voted_at') or ''}")
    elif command == "set-profile":
        board = Dashboard(client, user=client.session_user())
        outcome = board.set_profile_url(args.url)
        print(outcome.message)
        return 0 if outcome.accepted else 1
    elif command == "vote":
        board = Dashboard(client, user=probe_session(client, RetryPolicy(max_attempts=1)))
        outcome = board.cast_vote(args.candidate_id)
        print(outcome.message)
        if outcome.needs_profile_url:
            print("Run: set-profile https://linkedin.com/in/<you>")
        if outcome.accepted:
            print(render_results(board.candidates))
        return 0 if outcome.accepted else 1
    elif command == "dashboard":
        board = Dashboard(client, user=probe_session(client, RetryPolicy(max_attempts=1)))
        board.refresh()
        print(render_dashboard(board))
    elif command == "logout":
        client.logout()
        print("Signed out")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)
    with BallotClient(args.api_url) as client:
        load_cookies(client, args.cookie_file)
        try:
            code = run(args, client)
        except ApiError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            code = 1
        except httpx.HTTPError as exc:
            print(f"Could not reach {args.api_url}: {exc}", file=sys.stderr)
            code = 2
        save_cookies(client, args.cookie_file)
    sys.exit(code)
