import httpx
import pytest

from zkpredicates.artifacts import ArtifactLoader
from zkpredicates.errors import ArtifactLoadFailure


def test_local_path_and_file_url(tmp_path):
    p = tmp_path / "a.zkey"
    p.write_bytes(b"key")
    loader = ArtifactLoader()
    assert loader.fetch(str(p)) == b"key"
    assert loader.fetch(p.as_uri()) == b"key"


@pytest.mark.parametrize("content, setup", [(None, "missing"), (b"", "empty")])
def test_unusable_files(tmp_path, content, setup):
    p = tmp_path / "x.wasm"
    if content is not None:
        p.write_bytes(content)
    with pytest.raises(ArtifactLoadFailure) as ei:
        ArtifactLoader().fetch(str(p))
    assert ei.value.ref == str(p)


def test_unsupported_scheme():
    with pytest.raises(ArtifactLoadFailure, match="unsupported scheme"):
        ArtifactLoader().fetch("ftp://example.org/a.zkey")


def test_invalid_json(tmp_path):
    p = tmp_path / "vk.json"
    p.write_text("{not json")
    with pytest.raises(ArtifactLoadFailure, match="invalid JSON"):
        ArtifactLoader().load_json(str(p))


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_http_fetch_and_cache():
    hits = []

    def handler(request: httpx.Request) -> httpx.Response:
        hits.append(str(request.url))
        return httpx.Response(200, content=b'{"nPublic": 3}')

    loader = ArtifactLoader(client=_client(handler), cache=True)
    url = "https://cdn.example.org/zk/verification_keys/range_check_verification_key.json"
    assert loader.load_json(url) == {"nPublic": 3}
    assert loader.load_json(url) == {"nPublic": 3}
    assert hits == [url]
    loader.clear()
    loader.fetch(url)
    assert len(hits) == 2


def test_http_errors():
    loader = ArtifactLoader(client=_client(lambda request: httpx.Response(404)))
    with pytest.raises(ArtifactLoadFailure, match="HTTP 404"):
        loader.fetch("https://cdn.example.org/zk/missing.wasm")

    def boom(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ArtifactLoadFailure, match="refused"):
        ArtifactLoader(client=_client(boom)).fetch("http://127.0.0.1:9/x.zkey")
