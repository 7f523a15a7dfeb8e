"""
Pytest configuration and fixtures
"""

import pytest
from core.storage import LocalBlobStore
from tests.helpers import FakeFetcher, MemoryBlobStore, viewmodel_page


@pytest.fixture
def store(tmp_path):
    """Durable store rooted in a per-test temp dir"""
    return LocalBlobStore(str(tmp_path / "docs"))


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def mock_series():
    """First ViewModel argument: one series with every game list"""
    return [{
        "league": {"id": 1, "name": "LIDOM", "season": "2024-25"},
        "standings": [
            {"team": "Tigres del Licey", "w": 10, "l": 5},
            {"team": "Aguilas Cibaenas", "w": 8, "l": 7},
        ],
        "todayGames": [
            {
                "id": 501,
                "status": 2,
                "date": "2024-11-01T23:00:00Z",
                "roundText": "Serie Regular",
                "currentInningNum": 5,
                "lastPlayByPlay": "Sencillo al jardin izquierdo",
                "balls": 1, "strikes": 2, "outs": 1, "base": 2,
                "homeTeam": {"id": 10, "name": "Tigres del Licey", "abbreviation": "LIC",
                             "runs": 3, "hits": 6, "errors": 0},
                "awayTeam": {"id": 20, "name": "Aguilas Cibaenas", "abbreviation": "AGU",
                             "runs": 1, "hits": 4, "errors": 1},
            }
        ],
        "nearestGames": [
            {
                "id": 501,
                "status": 1,
                "date": "2024-11-01T23:00:00Z",
                "homeTeam": {"id": 10, "name": "Tigres del Licey",
                             "probablePitcher": {"name": "J. Perez", "era": "2.50"}},
                "awayTeam": {"id": 20, "name": "Aguilas Cibaenas"},
            },
            {
                "id": 502,
                "status": 1,
                "date": "2024-11-02T23:00:00Z",
                "homeTeam": {"id": 30, "name": "Leones del Escogido", "abbreviation": "ESC"},
                "awayTeam": {"id": 40, "name": "Estrellas Orientales", "abbreviation": "EST"},
            },
        ],
        "previousGames": [
            {
                "id": 499,
                "status": 6,
                "date": "2024-10-31T23:00:00Z",
                "roundText": "Serie Regular",
                "homeTeam": {"id": 40, "name": "Estrellas Orientales", "abbreviation": "EST",
                             "runs": 2, "hits": 7, "errors": 2},
                "awayTeam": {"id": 10, "name": "Tigres del Licey", "abbreviation": "LIC",
                             "runs": 5, "hits": 9, "errors": 0},
            }
        ],
        "previousRoundGames": [],
    }]


@pytest.fixture
def home_page(mock_series):
    return viewmodel_page(mock_series, {"lang": "es"}, "es", 3)


@pytest.fixture
def leaders_page():
    """Leaders page with one batting and one pitching table"""
    return """
    <html><body>
      <h1>LIDERES</h1>
      <table>
        <thead><tr><th>Jugador</th><th>Equipo</th><th>AVG</th><th>OPS</th><th>H</th></tr></thead>
        <tbody>
          <tr><td><a href="/Miembro/Detalle?idMiembro=101">Juan Soto</a></td><td>Licey</td>
              <td>.345</td><td>1.012</td><td>1,024</td></tr>
          <tr><td><a href="/Miembro/Detalle?idMiembro=102">Pedro Diaz</a></td><td>Escogido</td>
              <td>.310</td><td>.890</td><td>-</td></tr>
        </tbody>
      </table>
      <table>
        <thead><tr><th>Jugador</th><th>Equipo</th><th>ERA</th><th>WHIP</th><th>IP</th></tr></thead>
        <tbody>
          <tr><td><a href="/Miembro/Detalle?idMiembro=201">Luis Peña</a></td><td>Aguilas</td>
              <td>1.95</td><td>1.02</td><td>45.1</td></tr>
          <tr><td><a href="/Miembro/Detalle?idMiembro=101">Juan Soto</a></td><td>Licey</td>
              <td>3.00</td><td>1.20</td><td>3.0</td></tr>
        </tbody>
      </table>
      <table><tr><td>Filtros</td></tr></table>
    </body></html>
    """


@pytest.fixture
def player_page():
    """Player detail page: profile block, batting season and vs-pitchers tables"""
    return """
    <html><body>
      <h2>Juan Soto</h2>
      <div class="perfil">
        <p>Nacionalidad: Dominicana</p><p>Debut: 2015</p><p>Equipo: Tigres del Licey</p>
        <p>Fecha Nacimiento: 25/10/1998</p><p>Peso: 224</p><p>Posiciones: RF</p>
        <p>Lugar de Nacimiento: Santo Domingo</p><p>Pies/Pulgadas: 6-2</p><p>Batea/Lanza: Z/Z</p>
      </div>
      <select id="temporada">
        <option value="">Seleccione</option>
        <option value="2023">Temporada 2023-24</option>
      </select>
      <table>
        <thead><tr><th>Temporada</th><th>Equipo</th><th>AB</th><th>AVG</th><th>OPS</th></tr></thead>
        <tbody>
          <tr><td>2023-24</td><td>Licey</td><td>120</td><td>.300</td><td>.950</td></tr>
          <tr><td>2024-25</td><td>Licey</td><td>98</td><td>.345</td><td>1.012</td></tr>
        </tbody>
      </table>
      <table>
        <thead><tr><th>Lanzadores</th><th>AB</th><th>AVG</th></tr></thead>
        <tbody>
          <tr><td>1</td><td><a href="/Miembro/Detalle?idMiembro=201">Luis Peña</a></td><td>7</td><td>.286</td></tr>
        </tbody>
      </table>
    </body></html>
    """


@pytest.fixture
def memory_store():
    return MemoryBlobStore()
