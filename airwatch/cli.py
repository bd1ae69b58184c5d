"""
Command line tools

Flask CLI commands wrapping the import, ingestion and analysis operations:

    flask --app app import-csv data/nairobi_zones.csv
    flask --app app recompute-priorities
"""

import json
import os
from datetime import datetime, timedelta

import click
import requests
from flask import current_app

from airwatch.extensions import db
from airwatch.models import GridCell
from airwatch.services import (attribute_grid_sources, generate_recommendations,
                               run_hotspot_analysis, store_measurements,
                               update_grid_priorities)
from airwatch.services.copernicus import CopernicusClient, CopernicusError
from airwatch.services.importer import (import_intervention_zones_csv,
                                        import_measurements_csv)
from airwatch.services.openaq import OpenAQClient, process_measurements
from airwatch.services.simulation import simulate_measurements
from airwatch.services.waqi import WAQIClient
from airwatch.policy.services import dashboard_stats


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


def _get_cell(grid_id):
    cell = db.session.get(GridCell, grid_id)
    if cell is None:
        raise click.ClickException(f'Grid cell {grid_id} not found')
    return cell


def _fail_on_error(result):
    _echo_json(result)
    if result.get('status') == 'error':
        raise click.ClickException(result.get('message', 'operation failed'))


def register_commands(app):
    """Attach the platform commands to ``app.cli``."""

    @app.cli.command('import-csv')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--source-type', default='monitoring_station', show_default=True)
    def import_csv(path, source_type):
        """Import monitoring-zone measurements from a CSV file."""
        try:
            summary = import_measurements_csv(path, source_type=source_type)
        except ValueError as e:
            raise click.ClickException(str(e))
        click.echo(f"Imported {summary['inserted']} of {summary['rows']} rows "
                   f"({summary['duplicates']} duplicates, {summary['invalid']} invalid)")

    @app.cli.command('import-zones')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_zones(path):
        """Import intervention zones as grid cells with recommendations."""
        try:
            summary = import_intervention_zones_csv(path)
        except ValueError as e:
            raise click.ClickException(str(e))
        click.echo(f"Created {summary['inserted']} intervention zones "
                   f"({summary['invalid']} rows skipped)")

    @app.cli.command('import-openaq')
    @click.option('--hours', default=24, show_default=True)
    def import_openaq(hours):
        """Fetch recent OpenAQ measurements for the configured city."""
        cfg = current_app.config
        client = OpenAQClient(cfg['OPENAQ_BASE_URL'], api_key=cfg['OPENAQ_API_KEY'],
                              timeout=cfg['HTTP_TIMEOUT'])
        rows = client.fetch_latest_measurements(city=cfg['DEFAULT_CITY'],
                                                country=cfg['DEFAULT_COUNTRY'],
                                                hours_back=hours)
        records = process_measurements(rows)
        summary = store_measurements(records)
        click.echo(f"OpenAQ: {len(rows)} rows, {len(records)} locations, "
                   f"{summary['inserted']} stored")

    @app.cli.command('import-waqi')
    @click.option('--city', default=None, help='Station keyword (defaults to DEFAULT_CITY)')
    def import_waqi(city):
        """Fetch the current WAQI feed for the first matching station."""
        cfg = current_app.config
        client = WAQIClient(cfg['WAQI_TOKEN'], base_url=cfg['WAQI_BASE_URL'],
                            timeout=cfg['HTTP_TIMEOUT'])
        records = client.fetch_city(city or cfg['DEFAULT_CITY'])
        summary = store_measurements(records)
        click.echo(f"WAQI: {summary['inserted']} stored, {summary['duplicates']} duplicates")

    @app.cli.command('search-copernicus')
    @click.option('--days', default=3, show_default=True)
    @click.option('--top', default=10, show_default=True)
    @click.option('--download', 'download_dir', type=click.Path(file_okay=False),
                  help='Save a 1 MB sample of the first product here')
    def search_copernicus(days, top, download_dir):
        """List Sentinel-5P products over the city for the last few days."""
        cfg = current_app.config
        client = CopernicusClient(cfg['COPERNICUS_CLIENT_ID'], cfg['COPERNICUS_CLIENT_SECRET'],
                                  cfg['COPERNICUS_TOKEN_URL'], cfg['COPERNICUS_CATALOGUE_URL'],
                                  timeout=cfg['HTTP_TIMEOUT'])
        end = datetime.utcnow()
        start = end - timedelta(days=days)
        try:
            products = client.search_products(cfg['CITY_BBOX'],
                                              start.strftime('%Y-%m-%dT%H:%M:%S.000Z'),
                                              end.strftime('%Y-%m-%dT%H:%M:%S.000Z'),
                                              top=top)
        except CopernicusError as e:
            raise click.ClickException(str(e))

        for product in products:
            started = (product.get('ContentDate') or {}).get('Start')
            click.echo(f"{product.get('Id')}  {started}  {product.get('Name')}")
        click.echo(f'{len(products)} products')

        if download_dir and products:
            os.makedirs(download_dir, exist_ok=True)
            product = products[0]
            path = os.path.join(download_dir, f"{product.get('Name') or product['Id']}.sample")
            try:
                written = client.download_sample(product['Id'], path)
            except requests.exceptions.RequestException as e:
                raise click.ClickException(f'Download failed: {e}')
            click.echo(f'Saved {written} bytes to {path}')

    @app.cli.command('simulate')
    @click.option('--readings', default=5, show_default=True)
    def simulate(readings):
        """Store mock readings for the Nairobi monitoring zones."""
        summary = simulate_measurements(num_readings=readings)
        click.echo(f"Simulated {summary['inserted']} readings "
                   f"({summary['duplicates']} duplicates)")

    @app.cli.command('detect-hotspots')
    @click.option('--hours', default=24, show_default=True)
    def detect_hotspots(hours):
        """Run statistical hotspot detection."""
        _fail_on_error(run_hotspot_analysis(hours=hours))

    @app.cli.command('attribute-sources')
    @click.argument('grid_id', type=int)
    @click.option('--hours', default=24, show_default=True)
    def attribute_sources(grid_id, hours):
        """Attribute a grid cell's pollution to its likely sources."""
        _fail_on_error(attribute_grid_sources(_get_cell(grid_id), hours=hours))

    @app.cli.command('generate-policies')
    @click.argument('grid_id', type=int)
    def generate_policies(grid_id):
        """Generate policy recommendations for a grid cell."""
        _fail_on_error(generate_recommendations(_get_cell(grid_id)))

    @app.cli.command('recompute-priorities')
    @click.option('--hours', default=24, show_default=True)
    def recompute_priorities(hours):
        """Recompute priority scores for every grid cell."""
        _fail_on_error(update_grid_priorities(hours=hours))

    @app.cli.command('summary')
    def summary():
        """Print dashboard statistics."""
        _echo_json(dashboard_stats())
