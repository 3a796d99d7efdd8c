"""
Ledger Gateway

Thin transport to the supply chain canister through ``dfx canister call``.
Each operation builds one argv, runs it once and returns the raw stdout
text; decoding is left to the caller. Commands are executed without a
shell, and every argument is rendered by the Candid encoder.

Failures (missing binary, non-zero exit, timeout, or an error marker in a
mutating response) raise GatewayFailure. Nothing is retried here.
"""

import logging
import subprocess
from typing import Callable, List, Optional, Sequence, Tuple

from .encoder import encode_args, opt_float, text, text_vec
from .errors import GatewayFailure
from .values import Opt, Record, Scalar, Value, Variant

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MARKERS = ("Error:", "error:", "Product not found")

CommandRunner = Callable[[List[str]], str]


class SubprocessRunner:
    """Runs a command and returns its stdout."""

    def __init__(self, timeout: float = 30.0, cwd: Optional[str] = None):
        self.timeout = timeout
        self.cwd = cwd

    def __call__(self, argv: List[str]) -> str:
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=self.cwd,
            )
        except subprocess.TimeoutExpired:
            raise GatewayFailure(
                reason=f"Command timed out after {self.timeout}s",
                command=argv,
            )
        except OSError as e:
            raise GatewayFailure(
                reason=f"Could not execute {argv[0]}: {e}",
                command=argv,
            )

        if completed.returncode != 0:
            message = completed.stderr.strip() or completed.stdout.strip() or "Unknown error"
            raise GatewayFailure(
                reason=f"Command failed with exit code {completed.returncode}: {message}",
                command=argv,
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )

        if completed.stderr.strip():
            logger.warning(f"Command stderr: {completed.stderr.strip()}")

        return completed.stdout.strip()


class LedgerGateway:
    """Issues the ledger's operations as dfx commands."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        dfx_binary: str = "dfx",
        canister: str = "supply_chain",
        network: Optional[str] = None,
        error_markers: Sequence[str] = DEFAULT_ERROR_MARKERS,
    ):
        self.runner = runner or SubprocessRunner()
        self.dfx_binary = dfx_binary
        self.canister = canister
        self.network = network
        self.error_markers = tuple(error_markers)

    def build_command(self, method: str, args: Sequence[Value] = (), query: bool = False) -> List[str]:
        argv = [self.dfx_binary, "canister", "call"]
        if self.network:
            argv += ["--network", self.network]
        argv += [self.canister, method]
        if args:
            argv.append(encode_args(args))
        if query:
            argv.append("--query")
        return argv

    def call(self, method: str, args: Sequence[Value] = (), query: bool = False,
             mutating: bool = False) -> str:
        """Run one ledger method and return its raw text response."""
        argv = self.build_command(method, args, query)
        logger.debug(f"Executing: {' '.join(argv)}")
        try:
            output = self.runner(argv)
        except GatewayFailure as e:
            logger.error(f"Ledger call {method} failed: {e}")
            raise

        if mutating:
            self._check_error_markers(method, argv, output)
        return output

    def _check_error_markers(self, method: str, argv: List[str], output: str) -> None:
        for marker in self.error_markers:
            if marker in output:
                logger.error(f"Ledger {method} returned an error: {output}")
                raise GatewayFailure(reason=output, command=argv, stdout=output)

    # =========================================================================
    # Ledger operations
    # =========================================================================

    def list_products(self) -> str:
        return self.call("get_all_products", query=True)

    def create_product(
        self,
        name: str,
        description: str,
        manufacturer: str,
        batch_number: str,
        ingredients: Sequence[str],
        certifications: Sequence[str],
    ) -> str:
        args = (
            text(name),
            text(description),
            text(manufacturer),
            text(batch_number),
            text_vec(ingredients),
            text_vec(certifications),
        )
        return self.call("create_product", args, mutating=True)

    def get_trace(self, product_id: str) -> str:
        return self.call("get_supply_chain_trace", (text(product_id),), query=True)

    def append_event(
        self,
        product_id: str,
        event_tag: str,
        location: str,
        actor: str,
        details: str,
        coordinates: Optional[Tuple[float, float]] = None,
        temperature: Optional[float] = None,
        humidity: Optional[float] = None,
    ) -> str:
        if coordinates is None:
            coords: Value = Opt(None)
        else:
            lat, lng = coordinates
            coords = Opt(Record({"0": Scalar(float(lat)), "1": Scalar(float(lng))}))

        args = (
            text(product_id),
            Variant(event_tag),
            text(location),
            text(actor),
            text(details),
            coords,
            opt_float(temperature),
            opt_float(humidity),
        )
        return self.call("add_supply_chain_event", args, mutating=True)

    def get_product(self, product_id: str) -> str:
        return self.call("get_product", (text(product_id),), query=True)

    def verify_product_authenticity(self, product_id: str) -> str:
        return self.call("verify_product_authenticity", (text(product_id),), query=True)
