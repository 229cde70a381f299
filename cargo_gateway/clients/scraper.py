"""
Stateful web form client for carriers that only offer a tracking page.

ASP.NET pages need their hidden state (__VIEWSTATE, __EVENTVALIDATION, ...)
echoed back on the postback, so every submit is a GET followed by a POST.
"""
from typing import Optional

from bs4 import BeautifulSoup

from cargo_gateway.clients.http import HttpClient
from cargo_gateway.config import DEFAULT_TIMEOUT
from cargo_gateway.logger import get_logger

logger = get_logger("scraper")

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "tr-TR,tr;q=0.9,en;q=0.8",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}


def hidden_fields(html: str) -> dict:
    soup = BeautifulSoup(html or "", "html.parser")
    fields = {}
    for node in soup.find_all("input", attrs={"type": "hidden"}):
        name = node.get("name")
        if name:
            fields[name] = node.get("value", "")
    return fields


class FormScraper(HttpClient):

    def __init__(self, carrier: str, page_url: str, timeout: float = DEFAULT_TIMEOUT, session=None,
                 headers: Optional[dict] = None):
        super().__init__(carrier, timeout=timeout, session=session, headers=headers or BROWSER_HEADERS)
        self.page_url = page_url

    def fetch_form_state(self) -> dict:
        response = self.request("GET", self.page_url)
        return hidden_fields(response.text)

    def send(self, fields: dict) -> str:
        """Submits the tracking form with the page's hidden tokens and returns the result HTML."""
        state = self.fetch_form_state()
        form = {**state, **fields}

        logger.info(f"{self.carrier} form postback: {self.page_url}")
        response = self.request(
            "POST",
            self.page_url,
            data=form,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Referer": self.page_url,
            },
        )
        return response.text

    def fetch_page(self, url: Optional[str] = None, timeout: Optional[float] = None) -> str:
        response = self.request("GET", url or self.page_url, timeout=timeout or self.timeout)
        return response.text
