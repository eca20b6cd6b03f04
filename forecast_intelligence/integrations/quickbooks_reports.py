"""
QuickBooks Online Report Adapter

Fetches the two raw reports the forecast pipeline consumes: a monthly
Profit & Loss (one column per month) and a Balance Sheet snapshot for the
current cash position. Authentication is the caller's concern; this
client takes an already-issued access token and realm id.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Optional, Dict, Any
from enum import Enum

import requests
from dateutil.relativedelta import relativedelta

from ..errors import ReportFetchError

logger = logging.getLogger(__name__)


class QuickBooksEnvironment(Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


API_BASE_URLS = {
    QuickBooksEnvironment.SANDBOX: "https://sandbox-quickbooks.api.intuit.com",
    QuickBooksEnvironment.PRODUCTION: "https://quickbooks.api.intuit.com",
}


@dataclass
class ForecastInputs:
    """Raw report payloads covering one forecast window"""
    profit_and_loss: Dict[str, Any]
    balance_sheet: Dict[str, Any]
    start_date: date
    end_date: date


class QuickBooksReportClient:
    """
    QuickBooks Online Reports API client.

    Provides:
    - Monthly Profit & Loss report (summarized by month)
    - Balance Sheet snapshot as of a date
    - Both reports for a trailing window, fetched concurrently

    Example:
    ```python
    client = QuickBooksReportClient(access_token, realm_id)

    inputs = client.fetch_forecast_inputs(months=12)
    bundle = ForecastPipeline().run(inputs.profit_and_loss, balance_sheet=inputs.balance_sheet)
    ```
    """

    def __init__(
        self,
        access_token: str,
        realm_id: str,
        environment: str = "sandbox",
        minor_version: str = "65",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize client.

        Args:
            access_token: OAuth2 bearer token for the company
            realm_id: QuickBooks company id
            environment: "sandbox" or "production"
            minor_version: API minor version sent with each request
            timeout: Per-request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        if not access_token or not realm_id:
            raise ValueError("access_token and realm_id are required")
        self.access_token = access_token
        self.realm_id = realm_id
        self.environment = QuickBooksEnvironment(environment)
        self.minor_version = minor_version
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, access_token: str, realm_id: str, settings: Any) -> 'QuickBooksReportClient':
        """Create a client from a settings class (see config.settings)"""
        return cls(
            access_token,
            realm_id,
            environment=settings.QUICKBOOKS_ENVIRONMENT,
            minor_version=settings.QUICKBOOKS_MINOR_VERSION,
            timeout=settings.QUICKBOOKS_TIMEOUT_SECONDS
        )

    @property
    def api_base_url(self) -> str:
        return API_BASE_URLS[self.environment]

    def get_monthly_profit_and_loss(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """Fetch a Profit & Loss report with one column per month"""
        return self._get_report('ProfitAndLoss', {
            'start_date': start_date.strftime('%Y-%m-%d'),
            'end_date': end_date.strftime('%Y-%m-%d'),
            'summarize_column_by': 'Month'
        })

    def get_balance_sheet(self, as_of_date: Optional[date] = None) -> Dict[str, Any]:
        """Fetch a Balance Sheet snapshot"""
        params = {}
        if as_of_date:
            params['end_date'] = as_of_date.strftime('%Y-%m-%d')
        return self._get_report('BalanceSheet', params)

    def fetch_forecast_inputs(self, months: int = 12, end_date: Optional[date] = None) -> ForecastInputs:
        """
        Fetch the trailing P&L and a matching Balance Sheet concurrently.

        Args:
            months: Number of complete months of history
            end_date: Last day of the window (defaults to the end of last month)
        """
        if months < 1:
            raise ValueError("months must be at least 1")
        if end_date is None:
            end_date = date.today().replace(day=1) - relativedelta(days=1)
        start_date = end_date.replace(day=1) - relativedelta(months=months - 1)

        logger.info(f"Fetching QuickBooks reports {start_date} to {end_date} for realm {self.realm_id}")
        with ThreadPoolExecutor(max_workers=2) as executor:
            pnl_future = executor.submit(self.get_monthly_profit_and_loss, start_date, end_date)
            balance_future = executor.submit(self.get_balance_sheet, end_date)
            profit_and_loss = pnl_future.result()
            balance_sheet = balance_future.result()

        return ForecastInputs(
            profit_and_loss=profit_and_loss,
            balance_sheet=balance_sheet,
            start_date=start_date,
            end_date=end_date
        )

    def _get_report(self, report_name: str, params: Dict[str, str]) -> Dict[str, Any]:
        """Make an authenticated Reports API request"""
        url = f"{self.api_base_url}/v3/company/{self.realm_id}/reports/{report_name}"
        headers = {
            'Authorization': f'Bearer {self.access_token}',
            'Accept': 'application/json'
        }
        query = dict(params, minorversion=self.minor_version)

        try:
            response = self._session.get(url, headers=headers, params=query, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"QuickBooks {report_name} request failed with status {status}")
            raise ReportFetchError(report_name, str(e), status_code=status) from e
        except requests.RequestException as e:
            logger.error(f"QuickBooks {report_name} request failed: {e}")
            raise ReportFetchError(report_name, str(e)) from e
        except ValueError as e:
            raise ReportFetchError(report_name, f"invalid JSON response: {e}") from e

        if 'Fault' in data:
            errors = data['Fault'].get('Error', [])
            message = errors[0].get('Message', 'unknown fault') if errors else 'unknown fault'
            raise ReportFetchError(report_name, message)

        logger.debug(f"Fetched {report_name} with params {params}")
        return data
