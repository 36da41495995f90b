# shipbridge/cli/shipping.py
import asyncio

import click
from dotenv import load_dotenv

from shipbridge.core.exceptions import ShippingServiceError
from shipbridge.core.logging_config import configure_logging
from shipbridge.services.shipping.factory import available_carriers, get_carrier
from shipbridge.services.shipping.models import Address, Package, Shipment


@click.group()
@click.option("--log-level", default=None, help="Overrides LOG_LEVEL")
def cli(log_level):
    """Rates and tracking from the command line."""
    load_dotenv()
    configure_logging(log_level)


@cli.command()
@click.option("--carrier", "carrier_code", type=click.Choice(available_carriers()), required=True)
@click.option("--from-country", required=True)
@click.option("--from-postcode", default="")
@click.option("--from-city", default="")
@click.option("--to-country", required=True)
@click.option("--to-postcode", default="")
@click.option("--to-city", default="")
@click.option("--length", type=float, required=True)
@click.option("--width", type=float, required=True)
@click.option("--height", type=float, required=True)
@click.option("--weight", type=float, required=True)
@click.option("--value", type=float, default=0.0, help="Declared value of the package")
@click.option("--currency", default="USD")
def rates(carrier_code, from_country, from_postcode, from_city, to_country, to_postcode, to_city,
          length, width, height, weight, value, currency):
    """Quote rates for a single-package shipment"""

    async def _rates():
        carrier = get_carrier(carrier_code)
        shipment = Shipment(
            from_address=Address(country_code=from_country, postal_code=from_postcode, city=from_city),
            to_address=Address(country_code=to_country, postal_code=to_postcode, city=to_city),
            packages=[Package(length=length, width=width, height=height, weight=weight, price=value)],
            currency=currency,
        )

        click.echo(
            f"Units: {carrier.get_weight_unit(shipment).value} / {carrier.get_dimension_unit(shipment).value}"
        )
        response = await carrier.get_rates(shipment)

        if not response.rates:
            click.echo("No rates returned.")
            return

        for rate in sorted(response.rates, key=lambda r: (r.rate is None, r.rate or 0)):
            days = f"{rate.delivery_days} days" if rate.delivery_days is not None else "-"
            guaranteed = " (guaranteed)" if rate.delivery_date_guaranteed else ""
            click.echo(f"{rate.service_code:>4}  {rate.service_name:<35} {rate.display_price:>12}  {days}{guaranteed}")

    try:
        asyncio.run(_rates())
    except ShippingServiceError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option("--carrier", "carrier_code", type=click.Choice(available_carriers()), required=True)
@click.argument("tracking_numbers", nargs=-1, required=True)
def track(carrier_code, tracking_numbers):
    """Show current status for one or more tracking numbers"""

    async def _track():
        carrier = get_carrier(carrier_code)
        response = await carrier.get_tracking_status(list(tracking_numbers))

        if not response.tracking:
            click.echo("No tracking information returned.")
            return

        for tracking in response.tracking:
            eta = tracking.estimated_delivery.isoformat() if tracking.estimated_delivery else "-"
            click.echo(f"{tracking.tracking_number}: {tracking.status.value} - {tracking.status_detail} (ETA {eta})")
            click.echo(f"  {tracking.tracking_url}")
            for detail in tracking.details:
                when = detail.date.strftime("%Y-%m-%d %H:%M") if detail.date else ""
                click.echo(f"    {when:<16} {detail.location:<30} {detail.description}")

    try:
        asyncio.run(_track())
    except ShippingServiceError as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
