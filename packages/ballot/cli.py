from typing import List, Optional

import typer
from dotenv import load_dotenv

from .config import LedgerConfig
from .contracts import (
    BALLOT_INTERFACE,
    DEFAULT_BALLOT_ARTIFACT,
    DEFAULT_TOKEN_ARTIFACT,
    TOKEN_INTERFACE,
    resolve_interface,
)
from .errors import BallotError, ConfirmationTimedOut, OperatorCancelled
from .logs import configure_logging
from .orchestrator import LedgerSession, run_action
from .prompt import OperatorPrompt
from .schemas import RunResult
from .validation import validate_params
from .verifier import describe_view

app = typer.Typer(help="Deploy and operate a token-weighted ballot.", no_args_is_help=True)

YES = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt")
ENV_FILE = typer.Option(".env", "--env-file", help="dotenv file with ALCHEMY_API_KEY / PRIVATE_KEY / NETWORK_ID")
LOG_LEVEL = typer.Option("WARNING", "--log-level", help="Log level for the JSON diagnostics on stderr")
TIMEOUT = typer.Option(None, "--timeout", min=0, help="Seconds to wait for confirmation")
BALLOT_ARTIFACT = typer.Option(None, "--ballot-artifact", help="TokenizedBallot artifact JSON (abi + bytecode)")
TOKEN_ARTIFACT = typer.Option(None, "--token-artifact", help="MyToken artifact JSON (abi)")


def _execute(
    action: str,
    args: List[str],
    yes: bool,
    env_file: str,
    log_level: str,
    timeout: Optional[float],
    ballot_artifact: Optional[str],
    token_artifact: Optional[str],
) -> None:
    configure_logging(log_level)
    load_dotenv(env_file, override=False)

    config = None
    try:
        # bad arguments are reported before configuration or network are touched
        validate_params(action, args)
        config = LedgerConfig.from_env()
        session = LedgerSession.connect(
            config,
            OperatorPrompt(assume_yes=yes),
            ballot_interface=resolve_interface(ballot_artifact, BALLOT_INTERFACE, DEFAULT_BALLOT_ARTIFACT),
            token_interface=resolve_interface(token_artifact, TOKEN_INTERFACE, DEFAULT_TOKEN_ARTIFACT),
        )
        result = run_action(action, args, session, timeout=timeout)
    except OperatorCancelled as exc:
        raise typer.Exit(code=exc.exit_code)
    except BallotError as exc:
        if isinstance(exc, ConfirmationTimedOut):
            typer.echo("error: outcome unknown, the transaction may still be mined", err=True)
        typer.echo(f"error: {exc}", err=True)
        if exc.tx_hash and config is not None:
            typer.echo(f"transaction: {config.explorer_tx_url(exc.tx_hash)}", err=True)
        raise typer.Exit(code=exc.exit_code)

    _report(result, config)


def _report(result: RunResult, config: LedgerConfig) -> None:
    receipt = result.outcome.receipt
    typer.echo(f"Transaction confirmed in block {receipt.block_number}")
    typer.echo(f"Explorer: {config.explorer_tx_url(result.pending.tx_hash)}")
    if result.contract_address:
        typer.echo(f"Ballot contract deployed to: {result.contract_address}")
    report = result.verification
    if report is None:
        return
    for view in report.views:
        typer.echo(describe_view(view))
    for error in report.errors:
        typer.echo(f"warning: could not verify: {error}", err=True)


@app.command()
def deploy(
    args: List[str] = typer.Argument(None, metavar="PROPOSAL... TOKEN_ADDRESS BLOCK_DURATION"),
    yes: bool = YES,
    env_file: str = ENV_FILE,
    log_level: str = LOG_LEVEL,
    timeout: Optional[float] = TIMEOUT,
    ballot_artifact: Optional[str] = BALLOT_ARTIFACT,
    token_artifact: Optional[str] = TOKEN_ARTIFACT,
):
    """Deploy a TokenizedBallot whose snapshot block is BLOCK_DURATION blocks from now."""
    _execute("deploy", args or [], yes, env_file, log_level, timeout, ballot_artifact, token_artifact)


@app.command()
def vote(
    args: List[str] = typer.Argument(None, metavar="BALLOT_ADDRESS PROPOSAL_INDEX AMOUNT"),
    yes: bool = YES,
    env_file: str = ENV_FILE,
    log_level: str = LOG_LEVEL,
    timeout: Optional[float] = TIMEOUT,
    ballot_artifact: Optional[str] = BALLOT_ARTIFACT,
    token_artifact: Optional[str] = TOKEN_ARTIFACT,
):
    """Cast AMOUNT votes for proposal PROPOSAL_INDEX."""
    _execute("vote", args or [], yes, env_file, log_level, timeout, ballot_artifact, token_artifact)


@app.command()
def mint(
    args: List[str] = typer.Argument(None, metavar="TOKEN_ADDRESS TO_ADDRESS AMOUNT"),
    yes: bool = YES,
    env_file: str = ENV_FILE,
    log_level: str = LOG_LEVEL,
    timeout: Optional[float] = TIMEOUT,
    ballot_artifact: Optional[str] = BALLOT_ARTIFACT,
    token_artifact: Optional[str] = TOKEN_ARTIFACT,
):
    """Mint AMOUNT governance tokens to TO_ADDRESS."""
    _execute("mint", args or [], yes, env_file, log_level, timeout, ballot_artifact, token_artifact)


@app.command()
def transfer(
    args: List[str] = typer.Argument(None, metavar="TOKEN_ADDRESS TO_ADDRESS AMOUNT"),
    yes: bool = YES,
    env_file: str = ENV_FILE,
    log_level: str = LOG_LEVEL,
    timeout: Optional[float] = TIMEOUT,
    ballot_artifact: Optional[str] = BALLOT_ARTIFACT,
    token_artifact: Optional[str] = TOKEN_ARTIFACT,
):
    """Transfer AMOUNT governance tokens from the signer to TO_ADDRESS."""
    _execute("transfer", args or [], yes, env_file, log_level, timeout, ballot_artifact, token_artifact)


@app.command()
def delegate(
    args: List[str] = typer.Argument(None, metavar="TOKEN_ADDRESS [DELEGATEE_ADDRESS]"),
    yes: bool = YES,
    env_file: str = ENV_FILE,
    log_level: str = LOG_LEVEL,
    timeout: Optional[float] = TIMEOUT,
    ballot_artifact: Optional[str] = BALLOT_ARTIFACT,
    token_artifact: Optional[str] = TOKEN_ARTIFACT,
):
    """Delegate the signer's voting power (to itself when no delegatee is given)."""
    _execute("delegate", args or [], yes, env_file, log_level, timeout, ballot_artifact, token_artifact)


if __name__ == "__main__":
    app()
