"""
Best-effort participant recovery from results-table markup.

Some pages only list a game as a table row whose team cells link to the
team page. When a raw observation lacks home/away ids, the row is read
positionally: the scoreboard lists the visitors first, so the first team
link is the away side and the second is home. This encodes an assumption
about the site's layout, not a data contract; callers only use it to fill
gaps.
"""

from typing import Any, Dict, List, Optional, Tuple
from bs4 import BeautifulSoup
import logging
import re

logger = logging.getLogger(__name__)

# ?idEquipo=20, ?team=LIC or /equipos/20
TEAM_HREF_RE = re.compile(
    r"(?:[?&](?:idEquipo|teamId|equipo|team)=(\w+)|/(?:equipos?|teams?)/(\d+))",
    re.IGNORECASE
)


def _team_links(row) -> List[Dict[str, Any]]:
    links = []
    for cell in row.find_all(["td", "th"]):
        for anchor in cell.find_all("a", href=True):
            match = TEAM_HREF_RE.search(anchor["href"])
            if not match:
                continue
            raw_id = match.group(1) or match.group(2)
            links.append({
                "id": int(raw_id) if raw_id.isascii() and raw_id.isdigit() else raw_id,
                "name": " ".join(anchor.get_text(" ", strip=True).split()) or None,
            })
    return links


def participants_from_row(row_html: str) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """
    Return (away, home) dicts with ``id``/``name`` read from team links, or (None, None).
    """
    if not row_html:
        return None, None
    soup = BeautifulSoup(row_html, "html.parser")
    row = soup.find("tr") or soup
    links = _team_links(row)
    if len(links) < 2:
        logger.debug(f"Markup fallback found {len(links)} team link(s); need 2")
        return None, None
    return links[0], links[1]
