from specsync.analyzer import ImpactAnalyzer
from specsync.detector import make_change
from specsync.schemas import DifferenceItem


def _details(*keys, kind="added"):
    return [DifferenceItem(key=k, kind=kind, new_value=1) for k in keys]


def test_modules_and_actions():
    analysis = ImpactAnalyzer().analyze([
        make_change("validation-rules", _details("content")),
        make_change("sources", _details("commands")),
        make_change("sources", _details("examples")),
    ])
    assert analysis.impacted_modules == ["data-extractors", "quality-controllers"]
    assert len(analysis.update_actions) == 3
    assert analysis.auto_updateable is True


def test_example_prompts_require_review():
    change = make_change("content-rules", _details("example-prompts"))
    assert ImpactAnalyzer.requires_manual_review(change)
    assert not ImpactAnalyzer.requires_manual_review(make_change("content-rules", _details("links")))


def test_removed_output_requires_review():
    assert ImpactAnalyzer.requires_manual_review(make_change("output-structure", _details("files", kind="removed")))
    assert not ImpactAnalyzer.requires_manual_review(make_change("output-structure", _details("files")))


def test_many_details_require_review_only_when_high():
    keys = [f"k{i}" for i in range(6)]
    for change_type in ("content-rules", "output-structure"):
        assert ImpactAnalyzer.requires_manual_review(make_change(change_type, _details(*keys)))
        assert not ImpactAnalyzer.requires_manual_review(make_change(change_type, _details(*keys[:5])))
    for change_type in ("sources", "templates", "validation-rules"):
        assert not ImpactAnalyzer.requires_manual_review(make_change(change_type, _details(*keys)))


def test_effort_buckets():
    medium = make_change("sources", _details("commands"))
    high = make_change("content-rules", _details("links"))
    assert ImpactAnalyzer.estimate_effort([]) == "low"
    assert ImpactAnalyzer.estimate_effort([medium]) == "low"
    assert ImpactAnalyzer.estimate_effort([high, high]) == "medium"
    assert ImpactAnalyzer.estimate_effort([high, high, medium]) == "high"


def test_manual_review_blocks_auto_update():
    analyzer = ImpactAnalyzer()
    analysis = analyzer.analyze([make_change("content-rules", _details("example-prompts"))])
    assert analysis.auto_updateable is False
    recs = analyzer.recommendations(analysis)
    assert recs[0] == "Manual review required for some changes"
    assert recs[-1] == "Run: specsync validate after updates"
