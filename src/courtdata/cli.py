from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer

from courtdata.config import Settings
from courtdata.errors import ProviderConfigError
from courtdata.providers import CourtProvider, CourtProviderFactory, ProviderType, resolve_provider_type
from courtdata.simulation import SIMULATED_ENDPOINT, SimulatedCourtPortal
from courtdata.types import ProviderResult, SearchFilters, to_jsonable

app = typer.Typer(help="Court case data CLI over the configured providers")

PROVIDER_OPTION = typer.Option(
    None,
    "--provider",
    "-p",
    help="Provider type token (defaults to COURTDATA_DEFAULT_PROVIDER)",
)
SIMULATE_OPTION = typer.Option(False, "--simulate", help="Serve requests from the fixture-backed simulated portal")
FIXTURE_OPTION = typer.Option(None, help="Path to the simulated portal fixture JSON")
API_TOKEN_OPTION = typer.Option(
    None,
    envvar="COURTDATA_API_TOKEN",
    help="Court API token value. Optional 'Token ' prefix is accepted.",
)
BENCH_OPTION = typer.Option(None, help="Karnataka High Court bench (bengaluru, dharwad, kalaburagi)")


@app.callback()
def configure_logging(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    level = logging.DEBUG if verbose else Settings().log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")


@app.command("providers")
def list_providers() -> None:
    """List the available provider types."""

    rows = []
    for token in CourtProviderFactory.get_available_providers():
        provider = CourtProviderFactory.create_provider(token)
        rows.append({"type": token, "name": provider.name})
    _echo(rows)


@app.command("capabilities")
def capabilities(provider: str = typer.Argument(..., help="Provider type token")) -> None:
    instance = CourtProviderFactory.create_provider(_provider_type(provider))
    _echo(instance.get_capabilities())


@app.command("case")
def get_case(
    cnr: str = typer.Argument(..., help="16-character CNR, e.g. MHPU010012342023"),
    provider: Optional[str] = PROVIDER_OPTION,
    simulate: bool = SIMULATE_OPTION,
    fixture: Optional[Path] = FIXTURE_OPTION,
    api_token: Optional[str] = API_TOKEN_OPTION,
    bench: Optional[str] = BENCH_OPTION,
) -> None:
    instance = _build_provider(provider, simulate=simulate, fixture=fixture, api_token=api_token, bench=bench)
    _report(_run(instance, lambda p: p.get_case_by_cnr(cnr)))


@app.command("search")
def search(
    case_number: Optional[str] = typer.Option(None, help="Case or registration number"),
    party: Optional[str] = typer.Option(None, help="Party name (substring match)"),
    advocate: Optional[str] = typer.Option(None, help="Advocate name (substring match)"),
    year: Optional[int] = typer.Option(None, help="Filing year"),
    court: Optional[str] = typer.Option(None, help="Court name"),
    case_type: Optional[str] = typer.Option(None, help="Case type, e.g. CIVIL"),
    status: Optional[str] = typer.Option(None, help="Case status, e.g. PENDING"),
    page_token: Optional[str] = typer.Option(None, help="Token returned as nextPageToken by a previous search"),
    provider: Optional[str] = PROVIDER_OPTION,
    simulate: bool = SIMULATE_OPTION,
    fixture: Optional[Path] = FIXTURE_OPTION,
    api_token: Optional[str] = API_TOKEN_OPTION,
    bench: Optional[str] = BENCH_OPTION,
) -> None:
    filters = SearchFilters(
        case_number=case_number,
        party_name=party,
        advocate_name=advocate,
        year=year,
        court=court,
        case_type=case_type,
        case_status=status,
        page_token=page_token,
    )
    instance = _build_provider(provider, simulate=simulate, fixture=fixture, api_token=api_token, bench=bench)
    _report(_run(instance, lambda p: p.search_case(filters)))


@app.command("cause-list")
def cause_list(
    court: str = typer.Argument(..., help="Court name or bench"),
    on_date: str = typer.Argument(..., metavar="DATE", help="Hearing date (YYYY-MM-DD)"),
    provider: Optional[str] = PROVIDER_OPTION,
    simulate: bool = SIMULATE_OPTION,
    fixture: Optional[Path] = FIXTURE_OPTION,
    api_token: Optional[str] = API_TOKEN_OPTION,
    bench: Optional[str] = BENCH_OPTION,
) -> None:
    listed_on = _parse_date(on_date)
    instance = _build_provider(provider, simulate=simulate, fixture=fixture, api_token=api_token, bench=bench)
    _report(_run(instance, lambda p: p.get_cause_list(court, listed_on)))


@app.command("orders")
def orders(
    cnr: str = typer.Argument(..., help="CNR of the case"),
    provider: Optional[str] = PROVIDER_OPTION,
    simulate: bool = SIMULATE_OPTION,
    fixture: Optional[Path] = FIXTURE_OPTION,
    api_token: Optional[str] = API_TOKEN_OPTION,
    bench: Optional[str] = BENCH_OPTION,
) -> None:
    instance = _build_provider(provider, simulate=simulate, fixture=fixture, api_token=api_token, bench=bench)
    _report(_run(instance, lambda p: p.list_orders(cnr)))


@app.command("download")
def download(
    order_id: str = typer.Argument(..., help="Order identifier"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the PDF to this path"),
    provider: Optional[str] = PROVIDER_OPTION,
    simulate: bool = SIMULATE_OPTION,
    fixture: Optional[Path] = FIXTURE_OPTION,
    api_token: Optional[str] = API_TOKEN_OPTION,
    bench: Optional[str] = BENCH_OPTION,
) -> None:
    instance = _build_provider(provider, simulate=simulate, fixture=fixture, api_token=api_token, bench=bench)
    result = _run(instance, lambda p: p.download_order_pdf(order_id))
    if result.success and output is not None and result.data is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(result.data)
    _report(result)


@app.command("test-connection")
def test_connection(
    provider: Optional[str] = PROVIDER_OPTION,
    simulate: bool = SIMULATE_OPTION,
    fixture: Optional[Path] = FIXTURE_OPTION,
    api_token: Optional[str] = API_TOKEN_OPTION,
    bench: Optional[str] = BENCH_OPTION,
) -> None:
    instance = _build_provider(provider, simulate=simulate, fixture=fixture, api_token=api_token, bench=bench)
    _report(_run(instance, lambda p: p.test_connection()))


def _provider_type(value: str) -> ProviderType:
    try:
        return resolve_provider_type(value)
    except ProviderConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _build_provider(
    provider: Optional[str],
    *,
    simulate: bool,
    fixture: Optional[Path],
    api_token: Optional[str],
    bench: Optional[str],
) -> CourtProvider:
    settings = Settings()
    provider_type = _provider_type(provider or settings.default_provider)
    config = settings.provider_config()
    if api_token:
        config = replace(config, api_key=api_token)
    if bench:
        config = replace(config, bench_code=bench)

    options: dict[str, Any] = {}
    if provider_type is ProviderType.KARNATAKA_HIGH_COURT:
        options["captcha_threshold"] = settings.captcha_threshold
    if simulate:
        portal = SimulatedCourtPortal(fixture or settings.fixture_path)
        config = replace(config, api_endpoint=SIMULATED_ENDPOINT, api_key=config.api_key or "simulated")
        if provider_type is ProviderType.MANUAL_IMPORT:
            options["fetcher"] = CourtProviderFactory.create_provider(
                ProviderType.DISTRICT_HIGH_COURT, config, transport=portal.transport()
            )
        else:
            options["transport"] = portal.transport()
    return CourtProviderFactory.create_provider(provider_type, config, **options)


def _run(provider: CourtProvider, call: Callable[[CourtProvider], Awaitable[ProviderResult[Any]]]) -> ProviderResult[Any]:
    async def runner() -> ProviderResult[Any]:
        try:
            return await call(provider)
        finally:
            closer = getattr(provider, "aclose", None)
            if closer is not None:
                await closer()

    return asyncio.run(runner())


def _report(result: ProviderResult[Any]) -> None:
    _echo(result)
    if not result.success:
        raise typer.Exit(code=1)


def _echo(value: Any) -> None:
    typer.echo(json.dumps(to_jsonable(value), indent=2, sort_keys=False))


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}") from exc


if __name__ == "__main__":
    app()
