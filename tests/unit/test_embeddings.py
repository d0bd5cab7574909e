import httpx

from services.embeddings import EmbeddingDispatcher, HttpEmbeddingIndex, NullEmbeddingIndex, default_embedding_index
from workflow.models import GeneratedInstance, InstanceProvenance


def _instance(index):
    return GeneratedInstance(
        id=f"i{index}",
        question="How do you roll back a failed release?",
        answer="B" * 120,
        tags=("operations",),
        quality_score=70.0,
        provenance=InstanceProvenance(session_id="s1"),
    )


def test_http_index_posts_one_batch():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"indexed": 2})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    HttpEmbeddingIndex("http://vectors.local/batch", client=client).embed_batch([_instance(0), _instance(1)])
    assert len(seen) == 1
    body = seen[0].read().decode()
    assert '"i0"' in body and '"i1"' in body
    assert '"session_id": "s1"' in body or '"session_id":"s1"' in body


def test_dispatcher_logs_and_swallows_index_errors():
    def handler(request):
        return httpx.Response(500)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    dispatcher = EmbeddingDispatcher(HttpEmbeddingIndex("http://vectors.local/batch", client=client))
    try:
        job = dispatcher.dispatch("u1", "s1", [_instance(0)])
        assert job.result(timeout=5) is False
        assert dispatcher.dispatch("u1", "s1", []) is None
    finally:
        dispatcher.shutdown()


def test_default_index_without_url_is_null():
    assert isinstance(default_embedding_index(), NullEmbeddingIndex)
