"""
utxoguard CLI - classify, score and select eCash wallet UTXOs.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger

from utxoguard.analytics import StaticAnalytics, UtxoAnalytics
from utxoguard.backends.snapshot import SnapshotFileClient
from utxoguard.classifier import InvalidFilterError, filter_classified
from utxoguard.config import Settings, get_settings
from utxoguard.export import (
    ExportDocument,
    classification_export,
    health_export,
    security_export,
    write_export,
)
from utxoguard.models import ClassifiedUtxo, HealthReport, SecurityReport
from utxoguard.selector import (
    InsufficientFundsError,
    InvalidStrategyError,
    SpendStrategy,
    StrategySelection,
    pick_inputs,
)
from utxoguard.service import AnalysisUnavailableError, WalletAnalysis, WalletAnalyzer

app = typer.Typer(
    name="utxoguard",
    help="Token-aware UTXO analysis for eCash wallets",
    add_completion=False,
)

EXIT_INVALID_INPUT = 1
EXIT_ANALYSIS_UNAVAILABLE = 2


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def format_atoms(atoms: int) -> str:
    return f"{atoms / 100:,.2f} XEC"


def format_classification(utxos: list[ClassifiedUtxo], report: SecurityReport) -> str:
    portfolio = report.token_portfolio
    lines = [
        "",
        f"UTXO Classification: {report.address}",
        "=" * 60,
        f"Total UTXOs: {portfolio.total}",
        f"  Tokens:   {portfolio.by_category['tokens']}",
        f"  Dust:     {portfolio.by_category['dust']}",
        f"  Currency: {portfolio.by_category['currency']}",
        "",
        "By type:",
    ]
    for utxo_type, count in portfolio.by_type.items():
        if count:
            lines.append(f"  {utxo_type:<15} {count}")
    lines.append(
        f"Dust analysis: {portfolio.by_type['pure-dust']} pure dust, "
        f"{portfolio.token_dust_utxos} token outputs at dust value (not dust)"
    )
    lines.append("")
    for item in utxos:
        token = ""
        if item.token is not None:
            token = f"  [{item.token.ticker or item.token.token_id[:8]}]"
        lines.append(
            f"  {item.utxo.tx_id[:16]}...:{item.utxo.output_index:<4} "
            f"{format_atoms(item.value_atoms):>18}  {item.utxo_type.label:<15}"
            f"{item.health.status.value}{token}"
        )
    return "\n".join(lines)


def format_security_report(report: SecurityReport) -> str:
    metrics = report.metrics
    lines = [
        "",
        f"Wallet Security Report: {report.address}",
        "=" * 60,
        f"Overall score: {report.overall_score}/100 ({report.status.value})",
        f"UTXOs: {metrics.total_utxos} total, {metrics.healthy_utxos} healthy, "
        f"{metrics.dust_utxos} dust, {metrics.token_utxos} token, "
        f"{metrics.suspicious_utxos} suspicious",
        f"Privacy score: {metrics.privacy_score}/100",
        "",
    ]
    if report.threats:
        lines.append(f"Threats ({len(report.threats)}):")
        for threat in report.threats:
            lines.append(f"  [{threat.severity.value.upper()}] {threat.title}")
            lines.append(f"      {threat.description}")
    elif report.warnings or not report.analytics_available:
        lines.append("No threats detected in the data that could be analyzed")
    else:
        lines.append("No security threats detected")

    for risk in report.token_risks:
        lines.append(f"  [TOKEN {risk.severity.value.upper()}] {risk.title}: {risk.description}")

    if report.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        for rec in report.recommendations:
            lines.append(f"  [{rec.priority.value.upper()}] {rec.title}: {rec.action}")
            if rec.command_hint:
                lines.append(f"      $ {rec.command_hint}")

    if report.warnings or not report.analytics_available:
        lines.append("")
        lines.append("Analysis incomplete, some data fell back to defaults:")
        if not report.analytics_available:
            lines.append("  - wallet analytics unavailable (privacy scores defaulted)")
        for warning in report.warnings:
            lines.append(f"  - {warning}")
    return "\n".join(lines)


def format_health_report(health: HealthReport) -> str:
    lines = [
        "",
        f"Wallet Health: {health.address}",
        "=" * 60,
        f"Health score: {health.overall_score}/100 ({health.status.value})",
    ]
    if health.balance is not None:
        lines.append(f"Confirmed balance:   {format_atoms(health.balance.confirmed_atoms)}")
        lines.append(f"Unconfirmed balance: {format_atoms(health.balance.unconfirmed_atoms)}")
    lines.append(f"Locked in tokens:    {format_atoms(health.atoms_in_tokens)}")
    lines.append(f"Available for fees:  {format_atoms(health.available_for_fees)}")
    lines.append("")
    lines.append("Value distribution:")
    for bucket, count in health.value_distribution.items():
        lines.append(f"  {bucket:<12} {count}")
    if health.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        for rec in health.recommendations:
            lines.append(f"  [{rec.priority.value.upper()}] {rec.title}")
    for warning in health.warnings:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines)


def format_selection(selection: StrategySelection, picked: list[ClassifiedUtxo] | None) -> str:
    lines = [
        "",
        f"Strategy: {selection.strategy.value}",
        f"  Eligible UTXOs:         {selection.eligible} ({format_atoms(selection.total_atoms)})",
        f"  Protected token UTXOs:  {selection.protected_tokens}",
        f"  Excluded dust UTXOs:    {selection.excluded_dust}",
        f"  Below strategy minimum: {selection.excluded_below_minimum}",
    ]
    if selection.warning:
        lines.append(f"Warning: {selection.warning}")
    chosen = picked if picked is not None else selection.utxos
    if chosen:
        lines.append("")
        lines.append("Inputs:" if picked is not None else "Eligible inputs:")
        for item in chosen:
            lines.append(f"  {item.outpoint}  {format_atoms(item.value_atoms)}")
    return "\n".join(lines)


def _load_analytics(path: Path | None, settings: Settings) -> UtxoAnalytics | None:
    if path is None or not settings.analytics_enabled:
        return None
    if not path.exists():
        logger.error(f"Analytics file not found: {path}")
        raise typer.Exit(EXIT_INVALID_INPUT)
    try:
        return StaticAnalytics.from_file(path)
    except ValueError as e:
        logger.error(f"Invalid analytics file: {e}")
        raise typer.Exit(EXIT_INVALID_INPUT) from e


def _analyze(
    snapshot: Path, address: str | None, analytics_file: Path | None, settings: Settings
) -> tuple[WalletAnalyzer, WalletAnalysis]:
    analyzer = WalletAnalyzer(
        SnapshotFileClient(snapshot, address),
        _load_analytics(analytics_file, settings),
        settings.classification,
        settings.metadata_concurrency,
    )
    try:
        analysis = asyncio.run(analyzer.analyze())
    except AnalysisUnavailableError as e:
        logger.error(f"Could not complete analysis: {e}")
        typer.echo("Could not complete analysis: wallet UTXOs unavailable", err=True)
        raise typer.Exit(EXIT_ANALYSIS_UNAVAILABLE) from e
    return analyzer, analysis


def _emit(document: ExportDocument, export: Path | None, as_json: bool, text: str) -> None:
    if as_json:
        typer.echo(document.to_json())
    else:
        typer.echo(text)
    if export is not None:
        path = write_export(document, export)
        typer.echo(f"\nReport exported to: {path}", err=as_json)


SNAPSHOT_OPTION = typer.Option(
    ..., "--snapshot", "-s", envvar="UTXOGUARD_SNAPSHOT", help="Path to JSON UTXO snapshot"
)
ADDRESS_OPTION = typer.Option(None, "--address", "-a", help="Wallet address label")
ANALYTICS_OPTION = typer.Option(
    None, "--analytics-file", help="JSON file with per-outpoint privacy scores and verdicts"
)
EXPORT_OPTION = typer.Option(
    None, "--export", "-e", help="Write a JSON report to this directory or .json file"
)
JSON_OPTION = typer.Option(False, "--json", help="Print the report as JSON")
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", "-l")


@app.command()
def classify(
    snapshot: Path = SNAPSHOT_OPTION,
    address: str | None = ADDRESS_OPTION,
    filter_terms: str | None = typer.Option(
        None, "--filter", "-f", help="Comma-separated types, categories or health statuses"
    ),
    analytics_file: Path | None = ANALYTICS_OPTION,
    export: Path | None = EXPORT_OPTION,
    as_json: bool = JSON_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Classify every UTXO as token, dust or plain XEC."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    _, analysis = _analyze(snapshot, address, analytics_file, settings)
    utxos = analysis.utxos
    terms: list[str] = []
    if filter_terms:
        terms = [t.strip() for t in filter_terms.split(",") if t.strip()]
        try:
            utxos = filter_classified(utxos, terms)
        except InvalidFilterError as e:
            logger.error(str(e))
            raise typer.Exit(EXIT_INVALID_INPUT) from e

    document = classification_export(utxos, analysis.report, terms)
    _emit(document, export, as_json, format_classification(utxos, analysis.report))


@app.command()
def security(
    snapshot: Path = SNAPSHOT_OPTION,
    address: str | None = ADDRESS_OPTION,
    analytics_file: Path | None = ANALYTICS_OPTION,
    export: Path | None = EXPORT_OPTION,
    as_json: bool = JSON_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Run threat detection and print the security report."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    _, analysis = _analyze(snapshot, address, analytics_file, settings)
    document = security_export(analysis.report)
    _emit(document, export, as_json, format_security_report(analysis.report))


@app.command()
def health(
    snapshot: Path = SNAPSHOT_OPTION,
    address: str | None = ADDRESS_OPTION,
    analytics_file: Path | None = ANALYTICS_OPTION,
    export: Path | None = EXPORT_OPTION,
    as_json: bool = JSON_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Show the token-aware wallet health dashboard."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    analyzer, analysis = _analyze(snapshot, address, analytics_file, settings)
    report = analyzer.health_report(analysis)
    _emit(health_export(report), export, as_json, format_health_report(report))


@app.command()
def select(
    snapshot: Path = SNAPSHOT_OPTION,
    strategy: str | None = typer.Option(
        None, "--strategy", help="Spending strategy: efficient | privacy | security"
    ),
    amount: int | None = typer.Option(
        None, "--amount", help="Target amount in atoms; picks the inputs to cover it"
    ),
    address: str | None = ADDRESS_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Select the XEC UTXOs a spending strategy may use. Token UTXOs are never selected."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    name = strategy or settings.default_strategy or SpendStrategy.EFFICIENT.value
    try:
        parsed = SpendStrategy.parse(name)
    except InvalidStrategyError as e:
        logger.error(str(e))
        raise typer.Exit(EXIT_INVALID_INPUT) from e

    analyzer, analysis = _analyze(snapshot, address, None, settings)
    selection = analyzer.selection(analysis, parsed)

    picked = None
    if amount is not None:
        try:
            picked = pick_inputs(selection.utxos, amount)
        except (InsufficientFundsError, ValueError) as e:
            typer.echo(format_selection(selection, None))
            logger.error(str(e))
            raise typer.Exit(EXIT_INVALID_INPUT) from e

    typer.echo(format_selection(selection, picked))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
