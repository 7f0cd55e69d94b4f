from swarm_forge.orchestration import (
    ArtifactAggregator,
    ArtifactKind,
    Citation,
    Deliverable,
    ErrorKind,
    GenerationResult,
    ResultStatus,
)


def image_result(node="CC-10", payloads=("data:image/png;base64,AA==",)):
    return GenerationResult(
        status=ResultStatus.SUCCESS,
        node_id=node,
        modality="image",
        deliverables=[Deliverable(kind=ArtifactKind.IMAGE, payload=p, mime_type="image/png") for p in payloads],
    )


class TestArtifactAggregator:
    def test_absorb_tags_artifacts(self):
        aggregator = ArtifactAggregator()
        result = image_result()
        result.citations = [Citation(source_uri="https://example.com")]

        artifacts = aggregator.absorb("t1", result, label="Hero")

        assert len(artifacts) == 1
        artifact = artifacts[0]
        assert artifact.task_id == "t1"
        assert artifact.originating_node == "CC-10"
        assert artifact.label == "Hero"
        assert artifact.kind == ArtifactKind.IMAGE
        assert artifact.citations == (Citation(source_uri="https://example.com"),)
        assert artifact.created_at > 0

    def test_absorbing_same_result_twice_keeps_both(self):
        aggregator = ArtifactAggregator()
        result = image_result()

        first = aggregator.absorb("t1", result)
        second = aggregator.absorb("t1", result)

        assert len(aggregator.artifacts) == 2
        assert first[0].id != second[0].id

    def test_error_results_yield_nothing(self):
        aggregator = ArtifactAggregator()
        failure = GenerationResult.failure("CC-06", ErrorKind.NODE_TIMEOUT, "too slow")

        assert aggregator.absorb("t1", failure) == []
        assert aggregator.artifacts == []

    def test_order_preserved_within_task(self):
        aggregator = ArtifactAggregator()
        aggregator.absorb("t1", image_result(payloads=("a", "b", "c")))
        aggregator.absorb("t2", image_result(node="CC-11", payloads=("d",)))

        assert [a.payload for a in aggregator.by_task("t1")] == ["a", "b", "c"]
        assert [a.payload for a in aggregator.artifacts] == ["a", "b", "c", "d"]
        assert aggregator.summary() == {"image": 4}

    def test_label_falls_back_to_task_id(self):
        aggregator = ArtifactAggregator()
        artifact = aggregator.absorb("t9", image_result())[0]

        assert artifact.label == "t9"
        assert artifact.to_dict()["taskId"] == "t9"
