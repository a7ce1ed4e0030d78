"""
Partner Product Discovery Gateway - CLI Entry Point.
Developer console for the partner API using Click and Rich.
"""

import asyncio
import logging
import sys
from functools import wraps
from typing import Any, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from partner_discovery import __version__
from partner_discovery.config.settings import Settings, get_settings
from partner_discovery.gateway.discovery import DiscoveryGateway
from partner_discovery.models.schemas import (
    CATALOG_PL_IMAGE_SIZES,
    GOLDBOX_IMAGE_SIZES,
    RECOMMENDATION_IMAGE_SIZES,
    SEARCH_IMAGE_SIZES,
    DeviceIdentity,
    DeviceIdMethod,
    DiscoveryResult,
    Operation,
)
from partner_discovery.services.device_identity import (
    DeviceIdentityProvider,
    JsonFileDeviceStore,
    LocalSignalSource,
)
from partner_discovery.services.partner_client import CoupangPartnersClient
from partner_discovery.utils.errors import PartnerTransportError, ValidationError
from partner_discovery.utils.logger import setup_logging

console = Console()

EXIT_TRANSPORT_ERROR = 1
EXIT_VALIDATION_ERROR = 2

# =============================================================================
# Helper Functions
# =============================================================================

def async_command(f):
    """Decorator to run async click commands."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def setup_logger(verbose: bool):
    """Configure logging based on verbosity."""
    level = "DEBUG" if verbose else "WARNING"
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    # structlog events go to stderr so --json output stays parseable
    setup_logging(level=level, json_format=False)


def image_size_help(sizes: tuple[str, ...], default: str) -> str:
    return f"Image size ({', '.join(sizes)}; default {default})"


def identity_provider(settings: Settings) -> DeviceIdentityProvider:
    return DeviceIdentityProvider(
        JsonFileDeviceStore(settings.device_store_path),
        LocalSignalSource(user_agent=f"partner-discovery/{__version__}"),
    )


async def run_operation(
    operation: Operation,
    params: dict[str, Any],
    device_identity: Optional[DeviceIdentity] = None,
) -> DiscoveryResult:
    settings = get_settings()
    async with CoupangPartnersClient(settings) as client:
        gateway = DiscoveryGateway(client, settings=settings)
        return await gateway.discover(operation, params, device_identity=device_identity)


def render_result(result: DiscoveryResult, as_json: bool) -> None:
    if as_json:
        console.print_json(result.to_json())
        return

    if not result.is_success:
        console.print(Panel.fit(
            f"[bold yellow]Partner returned rCode {result.result_code}[/bold yellow]\n{result.message}"
        ))
        return

    if result.shorten_url:
        console.print(f"[green]✓[/green] Short link: [bold cyan]{result.shorten_url}[/bold cyan]")
    if result.landing_url:
        console.print(f"Landing: [cyan]{result.landing_url}[/cyan]")

    if result.products:
        table = Table(title=f"{len(result.products)} products", show_lines=False)
        table.add_column("#", justify="right")
        table.add_column("ID", justify="right")
        table.add_column("Name")
        table.add_column("Price", justify="right")
        table.add_column("Rocket")
        table.add_column("Free ship")
        for product in result.products:
            table.add_row(
                str(product.rank or ""),
                str(product.product_id),
                product.product_name,
                f"{product.product_price:,}",
                "✓" if product.is_rocket else "",
                "✓" if product.is_free_shipping else "",
            )
        console.print(table)
    elif not result.shorten_url:
        console.print(f"[dim]No products ({result.message})[/dim]")


async def execute_and_render(
    operation: Operation,
    params: dict[str, Any],
    as_json: bool,
    verbose: bool,
    device_identity: Optional[DeviceIdentity] = None,
) -> None:
    try:
        result = await run_operation(operation, params, device_identity=device_identity)
    except ValidationError as e:
        console.print(f"[bold red]Invalid request:[/bold red] {e.message}")
        sys.exit(EXIT_VALIDATION_ERROR)
    except PartnerTransportError as e:
        console.print(f"[bold red]Partner error:[/bold red] {e.message}")
        if verbose:
            console.print_exception()
        sys.exit(EXIT_TRANSPORT_ERROR)
    render_result(result, as_json)


json_option = click.option("--json", "as_json", is_flag=True, help="Print the normalized result as JSON")
verbose_option = click.option("--verbose", is_flag=True, help="Detailed logging")

# =============================================================================
# CLI Group
# =============================================================================

@click.group()
@click.version_option(version=__version__)
def cli():
    """Partner Product Discovery console"""
    pass

# =============================================================================
# Discovery Commands
# =============================================================================

@cli.command()
@click.argument("keyword")
@click.option("--limit", default=None, help="Maximum products (default 10)")
@click.option("--image-size", default=None, help=image_size_help(SEARCH_IMAGE_SIZES, "230x230"))
@json_option
@verbose_option
@async_command
async def search(keyword: str, limit: Optional[str], image_size: Optional[str], as_json: bool, verbose: bool):
    """
    Search products by keyword.

    KEYWORD: Search term (e.g. "iphone")
    """
    setup_logger(verbose)
    await execute_and_render(
        Operation.SEARCH,
        {"keyword": keyword, "limit": limit, "imageSize": image_size},
        as_json,
        verbose,
    )


@cli.command()
@click.option("--sub-id", default=None, help="Sub ID for partner-side attribution")
@click.option("--image-size", default=None, help=image_size_help(GOLDBOX_IMAGE_SIZES, "230x230"))
@json_option
@verbose_option
@async_command
async def goldbox(sub_id: Optional[str], image_size: Optional[str], as_json: bool, verbose: bool):
    """List today's GoldBox deals."""
    setup_logger(verbose)
    await execute_and_render(
        Operation.GOLDBOX, {"subId": sub_id, "imageSize": image_size}, as_json, verbose
    )


@cli.command("catalog-pl")
@click.option("--limit", default=None, help="Maximum products (default 20)")
@click.option("--sub-id", default=None, help="Sub ID (default COUPANG_DEFAULT_SUB_ID)")
@click.option("--image-size", default=None, help=image_size_help(CATALOG_PL_IMAGE_SIZES, "512x512"))
@json_option
@verbose_option
@async_command
async def catalog_pl(limit: Optional[str], sub_id: Optional[str], image_size: Optional[str], as_json: bool, verbose: bool):
    """List the private-label catalog."""
    setup_logger(verbose)
    await execute_and_render(
        Operation.CATALOG_PL,
        {"limit": limit, "subId": sub_id, "imageSize": image_size},
        as_json,
        verbose,
    )


@cli.command()
@click.option("--device-id", default=None, help="ADID/UUID; defaults to this machine's stored identity")
@click.option("--mobile-like", is_flag=True, help="Use the random (install-ID style) identity instead of the fingerprint")
@click.option("--sub-id", default=None, help="Sub ID for partner-side attribution")
@click.option("--image-size", default=None, help=image_size_help(RECOMMENDATION_IMAGE_SIZES, "512x512"))
@json_option
@verbose_option
@async_command
async def recommendation(
    device_id: Optional[str],
    mobile_like: bool,
    sub_id: Optional[str],
    image_size: Optional[str],
    as_json: bool,
    verbose: bool,
):
    """Personalized recommendation for a device."""
    setup_logger(verbose)
    identity = None
    if not device_id:
        identity = identity_provider(get_settings()).get_or_create(mobile_like)
        if not as_json:
            console.print(f"[dim]Using {identity.method} device ID {identity.token}[/dim]")
    await execute_and_render(
        Operation.RECOMMENDATION,
        {"deviceId": device_id, "subId": sub_id, "imageSize": image_size},
        as_json,
        verbose,
        device_identity=identity,
    )


@cli.command()
@click.argument("url")
@click.option("--sub-id", default=None, help="Sub ID for partner-side attribution")
@json_option
@verbose_option
@async_command
async def deeplink(url: str, sub_id: Optional[str], as_json: bool, verbose: bool):
    """
    Convert a product URL into an affiliate short link.

    URL: A partner product page URL
    """
    setup_logger(verbose)
    await execute_and_render(Operation.DEEPLINK, {"url": url, "subId": sub_id}, as_json, verbose)

# =============================================================================
# Device Identity Commands
# =============================================================================

@cli.group("device-id")
def device_id_group():
    """Inspect or regenerate this machine's device identity."""
    setup_logger(verbose=False)


method_option = click.option(
    "--method",
    type=click.Choice([m.value for m in DeviceIdMethod]),
    default=DeviceIdMethod.FINGERPRINT.value,
    show_default=True,
)


@device_id_group.command("show")
@method_option
def device_id_show(method: str):
    """Show (creating if needed) the stored device identity."""
    provider = identity_provider(get_settings())
    identity = provider.get_or_create(method == DeviceIdMethod.RANDOM.value)
    console.print(f"{identity.method}: [bold cyan]{identity.token}[/bold cyan]")


@device_id_group.command("regenerate")
@method_option
def device_id_regenerate(method: str):
    """Replace the stored device identity."""
    provider = identity_provider(get_settings())
    previous = provider.peek(method)
    identity = provider.regenerate(method)
    console.print(f"{identity.method}: [bold cyan]{identity.token}[/bold cyan]")
    if previous and previous.token == identity.token:
        console.print("[yellow]Fingerprint unchanged: the environment signals are the same.[/yellow]")

# =============================================================================
# Setup and Server
# =============================================================================

@cli.command()
def validate_setup():
    """Check partner credentials and configuration."""
    console.print("[bold]Validating Setup...[/bold]")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(1)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")

    status = "[green]Pass[/green]" if settings.is_configured else "[red]Fail[/red]"
    table.add_row("Partner Credentials", status, "COUPANG_ACCESS_KEY / COUPANG_SECRET_KEY")
    table.add_row("Partner API", "[blue]Info[/blue]", settings.coupang_api_base_url)
    table.add_row("Default Sub ID", "[blue]Info[/blue]", settings.default_sub_id or "(none)")
    table.add_row("Device Store", "[blue]Info[/blue]", str(settings.device_store_path))
    table.add_row("Environment", "[blue]Info[/blue]", settings.app_env)
    console.print(table)

    if not settings.is_configured:
        console.print("\n[yellow]Warning: partner credentials missing. Every partner call will fail.[/yellow]")
        sys.exit(1)


@cli.command()
@click.option("--host", default=None, help="Bind address (default API_HOST)")
@click.option("--port", default=None, type=int, help="Port (default API_PORT)")
def serve(host: Optional[str], port: Optional[int]):
    """Run the HTTP discovery API."""
    import uvicorn

    from partner_discovery.api.app import create_app
    from partner_discovery.utils.logger import configure_from_settings

    settings = get_settings()
    configure_from_settings(settings)
    uvicorn.run(create_app(settings=settings), host=host or settings.api_host, port=port or settings.api_port)


if __name__ == "__main__":
    cli()
