"""
HTML table parsing for the statistics site and league results pages.

Covers the leaders page (batting/pitching leader tables), player detail
pages (labelled profile block plus season, game-log and split tables) and
results-table rows used when a page carries no embedded ViewModel.
"""

from typing import Any, Dict, List, Optional, Tuple
from bs4 import BeautifulSoup
from schemas.player import PlayerProfile, PlayerRecord
from ingestion.transformers.markup_fallback import TEAM_HREF_RE
from ingestion.transformers.normalizer import ROW_MARKUP_FIELD
import logging
import re
import unicodedata
from urllib.parse import quote, urljoin

logger = logging.getLogger(__name__)

PLAYER_HREF_RE = re.compile(r"idMiembro=(\d+)", re.IGNORECASE)
GAME_HREF_RE = re.compile(r"/juego/(\d+)", re.IGNORECASE)
DECORATIVE_ROW_RE = re.compile(r"LIDERES|Filtrar\s*\+|Serie Regular", re.IGNORECASE)
SEASON_LABEL_RE = re.compile(r"\b(?:19|20)\d{2}\b")
SEASON_PARAM_RE = re.compile(r"(?:idTemporada|Temporada|anio)=", re.IGNORECASE)

LEADER_KINDS = ("bateo", "pitcheo")

PLAYER_TABLE_KINDS = (
    "batting_season",
    "fielding_season",
    "batting_game_log",
    "fielding_game_log",
    "vs_pitchers",
)

# Profile label on the page -> PlayerProfile field
PROFILE_LABELS: Dict[str, str] = {
    "Nacionalidad": "nationality",
    "Debut": "debut",
    "Equipo": "team",
    "Fecha Nacimiento": "birth_date",
    "Peso": "weight",
    "Posiciones": "positions",
    "Lugar de Nacimiento": "birth_place",
    "Pies/Pulgadas": "height",
    "Batea/Lanza": "bats_throws",
}


def squash(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def clean_number(value: Any) -> Any:
    """'-' and blanks become None, '1,234' -> 1234, '.286' -> 0.286, other text unchanged."""
    if value is None:
        return None
    text = str(value).replace("\u00a0", " ").replace(",", "").strip()
    if text == "" or text == "-":
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return text
    if number != number or number in (float("inf"), float("-inf")):
        return text
    return number


def normalize_header(text: str, index: int) -> str:
    header = re.sub(r"\s+", "_", (text or "").strip().lower())
    header = re.sub(r"[().%]", "", header)
    if not header.strip("_"):
        header = f"col{index}"
    header = unicodedata.normalize("NFD", header)
    return "".join(c for c in header if not unicodedata.combining(c))


def has_columns(headers: List[str], *names: str) -> bool:
    upper = {h.upper() for h in headers}
    return all(name.upper() in upper for name in names)


def _header_cells(table) -> list:
    thead = table.find("thead")
    if thead is not None:
        rows = thead.find_all("tr")
        if rows:
            cells = rows[-1].find_all("th")
            if cells:
                return cells
    first = table.find("tr")
    if first is None:
        return []
    return first.find_all("th") or first.find_all("td")


def _body_rows(table) -> list:
    tbody = table.find("tbody")
    if tbody is not None:
        rows = tbody.find_all("tr", recursive=False)
        # header row living inside tbody
        if rows and rows[0].find("th") and not rows[0].find("td") and table.find("thead") is None:
            rows = rows[1:]
        return rows
    return table.find_all("tr")[1:]


def pad_headers(headers: List[str], cell_count: int) -> List[str]:
    """Extra leading cells in the data rows become 'rank', 'col_pad_0', ..."""
    missing = cell_count - len(headers)
    if missing <= 0:
        return headers
    pads = ["rank"] + [f"col_pad_{k}" for k in range(missing - 1)]
    return pads + headers


def parse_table(table) -> Optional[Tuple[List[str], List[Dict[str, Any]]]]:
    """
    Parse one <table> into (headers, rows).

    Returns None for tables with no header cells or no data rows. Cells are
    cleaned with ``clean_number``; a player link anywhere in the row adds
    ``jugador_id`` (and ``jugador`` when no such column was present).
    """
    raw_headers = [squash(cell.get_text(" ")) or f"col{i}" for i, cell in enumerate(_header_cells(table))]
    if not raw_headers:
        return None
    rows = _body_rows(table)
    if not rows:
        return None

    headers = [normalize_header(h, i) for i, h in enumerate(raw_headers)]
    headers = pad_headers(headers, len(rows[0].find_all(["td", "th"], recursive=False)))

    parsed = []
    for tr in rows:
        cells = tr.find_all(["td", "th"], recursive=False)
        if not cells:
            continue
        if len(cells) < 5 and DECORATIVE_ROW_RE.search(squash(tr.get_text(" "))):
            continue

        row: Dict[str, Any] = {}
        for i, header in enumerate(headers):
            row[header] = clean_number(squash(cells[i].get_text(" "))) if i < len(cells) else None

        link = tr.find("a", href=PLAYER_HREF_RE)
        if link is not None:
            row["jugador_id"] = int(PLAYER_HREF_RE.search(link["href"]).group(1))
            if not row.get("jugador"):
                row["jugador"] = squash(link.get_text(" ")) or None
        elif "jugador" in row:
            row["jugador_id"] = None

        for name in ("jugador", "equipo"):
            if row.get(name) is not None:
                row[name] = str(row[name])

        parsed.append(row)

    return headers, parsed


def leader_kind(headers: List[str]) -> Optional[str]:
    if has_columns(headers, "OPS", "AVG"):
        return "bateo"
    if has_columns(headers, "ERA", "WHIP"):
        return "pitcheo"
    return None


def parse_leaders(html: str) -> Dict[str, List[Dict[str, Any]]]:
    """Batting and pitching leader rows; unrecognized tables are skipped."""
    soup = BeautifulSoup(html, "html.parser")
    results: Dict[str, List[Dict[str, Any]]] = {kind: [] for kind in LEADER_KINDS}

    for table in soup.find_all("table"):
        parsed = parse_table(table)
        if parsed is None:
            continue
        headers, rows = parsed
        kind = leader_kind(headers)
        if kind is None:
            continue
        results[kind].extend(
            row for row in rows if any(v not in (None, "") for v in row.values())
        )

    logger.debug(f"Parsed leaders: {len(results['bateo'])} bateo, {len(results['pitcheo'])} pitcheo")
    return results


def player_ids_from_rows(rows: List[Dict[str, Any]]) -> Dict[int, Optional[str]]:
    """Player id -> display name, first occurrence wins."""
    ids: Dict[int, Optional[str]] = {}
    for row in rows:
        player_id = row.get("jugador_id") if isinstance(row, dict) else None
        if not isinstance(player_id, int) or isinstance(player_id, bool) or player_id in ids:
            continue
        ids[player_id] = squash(str(row.get("jugador") or "")) or None
    return ids


def player_table_kind(headers: List[str]) -> Optional[str]:
    if has_columns(headers, "temporada", "equipo"):
        if has_columns(headers, "avg", "ops"):
            return "batting_season"
        if has_columns(headers, "inn", "tc", "po", "rf"):
            return "fielding_season"
    if has_columns(headers, "fecha", "oponente"):
        if has_columns(headers, "ab", "avg", "ops"):
            return "batting_game_log"
        if has_columns(headers, "posiciones", "inn", "tc", "po"):
            return "fielding_game_log"
    if has_columns(headers, "lanzadores") and has_columns(headers, "ab", "avg"):
        return "vs_pitchers"
    return None


def classify_player_tables(soup) -> Dict[str, List[Dict[str, Any]]]:
    results: Dict[str, List[Dict[str, Any]]] = {kind: [] for kind in PLAYER_TABLE_KINDS}
    for table in soup.find_all("table"):
        if table.find("tbody") is None:
            continue
        parsed = parse_table(table)
        if parsed is None:
            continue
        headers, rows = parsed
        kind = player_table_kind(headers)
        if kind is not None:
            results[kind].extend(rows)
    return results


def _between(text: str, label: str, others: List[str]) -> Optional[str]:
    lowered = text.lower()
    found = lowered.find(f"{label}:".lower())
    if found < 0:
        return None
    start = found + len(label) + 1
    end = len(text)
    for other in others:
        nxt = lowered.find(f"{other}:".lower(), start)
        if nxt != -1:
            end = min(end, nxt)
    return squash(text[start:end]) or None


def parse_profile(soup, fallback_name: Optional[str] = None) -> PlayerProfile:
    heading = soup.find(["h1", "h2", "h3"])
    name = squash(heading.get_text(" ")) if heading is not None else ""
    name = name or squash(fallback_name) or None

    body = soup.body or soup
    text = squash(body.get_text(" "))
    labels = list(PROFILE_LABELS)

    values = {
        field: _between(text, label, [other for other in labels if other != label])
        for label, field in PROFILE_LABELS.items()
    }
    return PlayerProfile(name=name, **values)


def parse_player_page(
    html: str,
    player_id: int,
    fallback_name: Optional[str] = None,
    source: Optional[str] = None
) -> PlayerRecord:
    soup = BeautifulSoup(html, "html.parser")
    profile = parse_profile(soup, fallback_name)
    return PlayerRecord(
        player_id=player_id,
        name=profile.name or fallback_name,
        profile=profile,
        tables=classify_player_tables(soup),
        source=source,
    )


def results_rows(html: str) -> List[Dict[str, Any]]:
    """
    Raw game observations from scoreboard/results table rows.

    Each row with at least two team links yields ``{"rowHtml": ...}`` plus
    the game id when the row links to a game page and the two scores when
    the row has exactly two integer-only cells. Participants are recovered
    later by the normalizer's markup fallback.
    """
    soup = BeautifulSoup(html, "html.parser")
    observations = []
    for tr in soup.find_all("tr"):
        team_links = [a for a in tr.find_all("a", href=True) if TEAM_HREF_RE.search(a["href"])]
        if len(team_links) < 2:
            continue

        raw: Dict[str, Any] = {ROW_MARKUP_FIELD: str(tr)}
        game_link = tr.find("a", href=GAME_HREF_RE)
        if game_link is not None:
            raw["id"] = int(GAME_HREF_RE.search(game_link["href"]).group(1))

        scores = [
            int(text) for text in
            (squash(td.get_text(" ")) for td in tr.find_all("td", recursive=False))
            if text.isascii() and text.isdigit()
        ]
        if len(scores) == 2:
            raw["awayTeam"] = {"runs": scores[0]}
            raw["homeTeam"] = {"runs": scores[1]}

        observations.append(raw)

    logger.debug(f"Found {len(observations)} results row(s) in markup")
    return observations


def discover_season_urls(html: str, detail_url: str) -> List[Tuple[str, str]]:
    """
    (label, url) of per-season views linked from a player page.

    Season selectors are <option>s labelled with a year or "Serie"; their
    value is either a full URL or a season id appended as ``idTemporada``.
    Player links carrying a season parameter count too. Unique by URL,
    first label wins.
    """
    soup = BeautifulSoup(html, "html.parser")
    found: List[Tuple[str, str]] = []

    for option in soup.select("select option"):
        label = squash(option.get_text(" "))
        value = squash(option.get("value"))
        if not label or not (SEASON_LABEL_RE.search(label) or "serie" in label.lower()):
            continue
        if re.match(r"^https?://", value, re.IGNORECASE):
            found.append((label, value))
        elif value:
            found.append((label, f"{detail_url}&idTemporada={quote(value)}"))

    for anchor in soup.find_all("a", href=PLAYER_HREF_RE):
        href = anchor["href"]
        if not SEASON_PARAM_RE.search(href):
            continue
        found.append((squash(anchor.get_text(" ")) or href, urljoin(detail_url, href)))

    unique: Dict[str, str] = {}
    for label, url in found:
        unique.setdefault(url, label)
    return [(label, url) for url, label in unique.items()]
