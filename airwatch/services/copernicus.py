"""
Copernicus Data Service

Sentinel-5P product search on the Copernicus Data Space catalogue.
"""

import logging

import requests

logger = logging.getLogger(__name__)

SAMPLE_BYTES = 1024 * 1024


class CopernicusError(Exception):
    """Raised when the Copernicus identity service rejects the credentials."""


def bbox_to_wkt(bbox):
    min_lon, min_lat, max_lon, max_lat = bbox
    return (f'POLYGON(({min_lon} {min_lat}, {max_lon} {min_lat}, {max_lon} {max_lat}, '
            f'{min_lon} {max_lat}, {min_lon} {min_lat}))')


def build_product_filter(bbox, start, end, collection='SENTINEL-5P'):
    """OData $filter expression for products intersecting ``bbox`` between two ISO times."""
    return (
        f"Collection/Name eq '{collection}' and "
        f"OData.CSC.Intersects(area=geography'SRID=4326;{bbox_to_wkt(bbox)}') and "
        f"ContentDate/Start gt {start} and "
        f"ContentDate/Start lt {end}"
    )


class CopernicusClient:
    """Client-credentials authenticated catalogue client"""

    def __init__(self, client_id, client_secret, token_url, catalogue_url, timeout=8):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.catalogue_url = catalogue_url
        self.timeout = timeout
        self._token = None

    def get_token(self):
        if self._token:
            return self._token
        if not self.client_id or not self.client_secret:
            raise CopernicusError('Copernicus client credentials are not configured')

        resp = requests.post(self.token_url, data={
            'grant_type': 'client_credentials',
            'client_id': self.client_id,
            'client_secret': self.client_secret
        }, timeout=self.timeout)
        if resp.status_code != 200:
            raise CopernicusError(f'Token request failed: {resp.status_code}')

        token = resp.json().get('access_token')
        if not token:
            raise CopernicusError('Token response did not contain an access token')
        self._token = token
        return token

    def _headers(self):
        return {'Authorization': f'Bearer {self.get_token()}'}

    def search_products(self, bbox, start, end, top=10):
        """Return one page of product metadata (Id, Name, ContentDate...)."""
        params = {
            '$filter': build_product_filter(bbox, start, end),
            '$top': top
        }
        try:
            resp = requests.get(self.catalogue_url, headers=self._headers(),
                                params=params, timeout=self.timeout)
            if resp.status_code != 200:
                logger.error('Catalogue search failed %s: %s', resp.status_code, resp.text[:200])
                return []
            products = resp.json().get('value', [])
            logger.info('Found %d Sentinel-5P products', len(products))
            return products
        except requests.exceptions.Timeout:
            logger.error('Catalogue search timed out')
            return []
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error('Catalogue search failed: %s', e)
            return []

    def download_sample(self, product_id, path, max_bytes=SAMPLE_BYTES):
        """Stream at most ``max_bytes`` of a product to ``path``; returns bytes written."""
        url = f'{self.catalogue_url}({product_id})/$value'
        written = 0
        with requests.get(url, headers=self._headers(), stream=True, timeout=self.timeout) as resp:
            resp.raise_for_status()
            with open(path, 'wb') as f:
                for chunk in resp.iter_content(chunk_size=1024):
                    if not chunk:
                        continue
                    f.write(chunk[:max_bytes - written])
                    written += min(len(chunk), max_bytes - written)
                    if written >= max_bytes:
                        break
        return written
