# tests/services/test_gazetteer.py
import pytest
import requests

from ride_sim.domain.entities.geography import BoundingBox, Coordinate
from ride_sim.errors import ResolverError, ResolverErrorKind
from ride_sim.services.gazetteer import INDIA_VIEWBOX, NominatimGazetteer, StaticGazetteer


# ---------- fake HTTP session ----------


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


MUMBAI_RAW = {
    "display_name": "Mumbai, Mumbai Suburban, Maharashtra, India",
    "lat": "19.0760",
    "lon": "72.8777",
    "address": {"city": "Mumbai", "state": "Maharashtra", "country_code": "in"},
}


# ---------- Nominatim ----------


def test_search_request_shape():
    s = FakeSession(FakeResponse([MUMBAI_RAW]))
    g = NominatimGazetteer(user_agent="ride-sim-tests", session=s)
    hits = g.search("Mumbai", country_codes="in", viewbox=INDIA_VIEWBOX, bounded=True, limit=5)

    (call,) = s.calls
    assert call["url"] == "https://nominatim.openstreetmap.org/search"
    assert call["params"] == {
        "q": "Mumbai",
        "format": "json",
        "addressdetails": 1,
        "limit": 5,
        "countrycodes": "in",
        "viewbox": INDIA_VIEWBOX.as_viewbox(),
        "bounded": 1,
    }
    assert call["headers"]["User-Agent"] == "ride-sim-tests"
    assert call["timeout"] == 8.0

    (hit,) = hits
    assert hit.lat == 19.076 and hit.lon == 72.8777
    assert hit.address["state"] == "Maharashtra"


def test_search_without_bias_sends_no_viewbox():
    s = FakeSession(FakeResponse([]))
    assert NominatimGazetteer(session=s).search("nowhere") == []
    params = s.calls[0]["params"]
    assert "viewbox" not in params and "bounded" not in params and "countrycodes" not in params


def test_search_truncates_to_limit():
    s = FakeSession(FakeResponse([MUMBAI_RAW] * 8))
    assert len(NominatimGazetteer(session=s).search("Mumbai", limit=3)) == 3


@pytest.mark.parametrize(
    "response, kind",
    [
        (requests.Timeout("slow"), ResolverErrorKind.TIMEOUT),
        (requests.ConnectionError("down"), ResolverErrorKind.NETWORK),
        (FakeResponse([], status=503), ResolverErrorKind.NETWORK),
        (FakeResponse(ValueError("not json")), ResolverErrorKind.NETWORK),
        (FakeResponse({"unexpected": "object"}), ResolverErrorKind.NETWORK),
        (FakeResponse([{"display_name": "no coords"}]), ResolverErrorKind.NETWORK),
    ],
)
def test_search_failures_map_to_resolver_errors(response, kind):
    g = NominatimGazetteer(session=FakeSession(response))
    with pytest.raises(ResolverError) as ei:
        g.search("Mumbai")
    assert ei.value.kind is kind
    assert ei.value.retryable == (kind is ResolverErrorKind.NETWORK)


def test_reverse_request_and_no_result():
    s = FakeSession(FakeResponse(MUMBAI_RAW), FakeResponse({"error": "Unable to geocode"}))
    g = NominatimGazetteer(session=s)
    hit = g.reverse(Coordinate(72.8777, 19.0760))
    assert hit.display_name.startswith("Mumbai")
    assert s.calls[0]["url"].endswith("/reverse")
    assert s.calls[0]["params"]["lat"] == 19.0760
    assert s.calls[0]["timeout"] == 10.0

    assert g.reverse(Coordinate(0.0, 0.0), timeout_s=2.0) is None
    assert s.calls[1]["timeout"] == 2.0


# ---------- offline gazetteer ----------


def test_static_search_is_case_insensitive_substring():
    g = StaticGazetteer()
    names = [h.display_name for h in g.search("  MUMBAI ", limit=10)]
    assert names and all("Mumbai" in n for n in names)
    assert len(g.search("mumbai", limit=2)) == 2
    assert g.search("Atlantis") == []


def test_static_search_honours_country_and_viewbox():
    g = StaticGazetteer()
    assert g.search("Delhi", country_codes="us") == []
    assert g.search("Delhi", country_codes="us,in")
    south_only = BoundingBox.from_viewbox(68.0, 8.0, 98.0, 20.0)
    assert g.search("Delhi", viewbox=south_only, bounded=True) == []
    assert g.search("Delhi", viewbox=south_only, bounded=False)


def test_static_reverse_finds_nearest_place():
    g = StaticGazetteer()
    hit = g.reverse(Coordinate(72.8660, 19.0890))
    assert hit.display_name.startswith("Mumbai Airport")
    assert g.reverse(Coordinate(0.0, 0.0)) is None
