"""robots.txt fetching, parsing and matching."""
import asyncio
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, Field

from ..core.logging import get_logger


class RobotsRules(BaseModel):
    """Rules that apply to our user agent on one host."""
    allow_rules: List[str] = Field(default_factory=list)
    disallow_rules: List[str] = Field(default_factory=list)
    crawl_delay: Optional[float] = Field(default=None, description="Seconds between requests")


def _rule_to_regex(rule: str) -> "re.Pattern":
    """Translate a robots.txt path rule with ``*`` and ``$`` into a regex."""
    anchored = rule.endswith("$")
    if anchored:
        rule = rule[:-1]
    pattern = ".*".join(re.escape(part) for part in rule.split("*"))
    return re.compile(pattern + ("$" if anchored else ""))


def _rule_matches(rule: str, path: str) -> bool:
    if "*" not in rule and not rule.endswith("$"):
        return path.startswith(rule)
    return _rule_to_regex(rule).match(path) is not None


class RobotsTxtParser:
    """
    Fetches and caches robots.txt per host.

    Rules are cached for the lifetime of the parser. Concurrent lookups for
    the same host share a single fetch. A missing, unreachable or malformed
    robots.txt allows everything.
    """

    def __init__(
        self,
        user_agent: str = "*",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        logger: Optional[logging.Logger] = None
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client
        self._cache: Dict[str, RobotsRules] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = logger or get_logger("robots")

    @staticmethod
    def _host_key(url: str) -> str:
        parsed = urlparse(url if "://" in url else f"https://{url}")
        return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"

    def parse(self, content: str) -> RobotsRules:
        """
        Parse robots.txt content for the configured user agent.

        Groups naming our agent (case-insensitive substring match on the
        product token) win over ``*`` groups.

        Args:
            content: Raw robots.txt text

        Returns:
            RobotsRules for our agent
        """
        agent_token = self.user_agent.split("/")[0].strip().lower()
        groups: List[Dict] = []
        current: Optional[Dict] = None
        last_was_agent = False

        for raw_line in content.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue
            field, value = line.split(":", 1)
            field = field.strip().lower()
            value = value.strip()

            if field == "user-agent":
                if current is None or not last_was_agent:
                    current = {"agents": [], "allow": [], "disallow": [], "delay": None}
                    groups.append(current)
                if value:
                    current["agents"].append(value.lower())
                last_was_agent = True
                continue

            last_was_agent = False
            if current is None:
                continue
            if field == "allow" and value:
                current["allow"].append(value)
            elif field == "disallow" and value:
                current["disallow"].append(value)
            elif field == "crawl-delay":
                try:
                    current["delay"] = float(value)
                except ValueError:
                    self.logger.debug(f"Ignoring invalid crawl-delay: {value}")

        specific = [
            g for g in groups
            if agent_token and agent_token != "*" and any(a != "*" and a in agent_token for a in g["agents"])
        ]
        selected = specific or [g for g in groups if "*" in g["agents"]]

        rules = RobotsRules()
        for group in selected:
            rules.allow_rules.extend(group["allow"])
            rules.disallow_rules.extend(group["disallow"])
            if group["delay"] is not None and rules.crawl_delay is None:
                rules.crawl_delay = group["delay"]
        return rules

    async def _fetch(self, host_key: str) -> RobotsRules:
        robots_url = f"{host_key}/robots.txt"
        headers = {"User-Agent": self.user_agent, "Accept": "text/plain,*/*"}
        try:
            if self._client is not None:
                response = await self._client.get(robots_url, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(robots_url, headers=headers)

            if response.status_code != 200:
                self.logger.info(f"No robots.txt at {robots_url} (status: {response.status_code})")
                return RobotsRules()

            rules = self.parse(response.text)
            self.logger.info(
                f"Loaded robots.txt from {robots_url}: "
                f"{len(rules.disallow_rules)} disallow, {len(rules.allow_rules)} allow"
            )
            return rules

        except Exception as e:
            self.logger.warning(f"Could not load robots.txt from {robots_url}: {e}")
            return RobotsRules()

    async def fetch_and_parse(self, url: str) -> RobotsRules:
        """
        Return the cached rules for a URL's host, fetching them once.

        Args:
            url: Any URL on the host, or a bare host name

        Returns:
            RobotsRules (allow-all when robots.txt is unavailable)
        """
        host_key = self._host_key(url)
        cached = self._cache.get(host_key)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(host_key, asyncio.Lock())
        async with lock:
            cached = self._cache.get(host_key)
            if cached is None:
                cached = await self._fetch(host_key)
                self._cache[host_key] = cached
            return cached

    @staticmethod
    def check(rules: RobotsRules, url: str) -> bool:
        """
        Match a URL against parsed rules.

        The longest matching rule wins; Allow wins a tie.
        """
        parsed = urlparse(url)
        path = parsed.path or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"

        best_allow = max((len(r) for r in rules.allow_rules if _rule_matches(r, path)), default=-1)
        best_disallow = max((len(r) for r in rules.disallow_rules if _rule_matches(r, path)), default=-1)

        if best_disallow < 0:
            return True
        return best_allow >= best_disallow

    async def is_allowed(self, url: str) -> bool:
        """Check whether our user agent may fetch ``url``."""
        rules = await self.fetch_and_parse(url)
        allowed = self.check(rules, url)
        if not allowed:
            self.logger.debug(f"Disallowed by robots.txt: {url}")
        return allowed

    async def get_crawl_delay(self, url: str) -> Optional[float]:
        """Return the host's crawl delay in seconds, if one is declared."""
        rules = await self.fetch_and_parse(url)
        return rules.crawl_delay

    def clear(self):
        """Drop all cached rules."""
        self._cache.clear()
