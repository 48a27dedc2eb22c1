"""Tests for WorkflowBlueprint identity and BlueprintRegistry resolution."""

import pytest

from workflow_kernel.domain.blueprint import BlueprintRegistry, WorkflowBlueprint
from workflow_kernel.domain.state import StateCollection
from workflow_kernel.domain.transition import TransitionCollection
from workflow_kernel.exceptions import BlueprintNotFoundError
from workflow_modules.article import ArticleWorkflow, PeerReviewWorkflow


class NamedWorkflow(WorkflowBlueprint):
    name = "named-workflow"

    def states(self):
        return ["open", "closed"]

    def transitions(self):
        return [("open", "closed")]


class NeedsArgs(WorkflowBlueprint):
    def __init__(self, flavour):
        self.flavour = flavour

    def states(self):
        return ["x"]

    def transitions(self):
        return []


NOT_A_BLUEPRINT = object()


class TestBlueprintIdentity:

    def test_default_id_is_module_and_qualname(self):
        assert ArticleWorkflow().blueprint_id == "workflow_modules.article.workflows:ArticleWorkflow"

    def test_explicit_name_wins(self):
        assert NamedWorkflow().blueprint_id == "named-workflow"

    def test_collections_built_from_declarations(self):
        blueprint = NamedWorkflow()
        assert isinstance(blueprint.state_collection(), StateCollection)
        assert isinstance(blueprint.transition_collection(), TransitionCollection)
        assert blueprint.transition_collection().keys() == [("open", "closed")]

    def test_default_principal_resolver_returns_none(self):
        assert NamedWorkflow().principal_resolver()() is None


class TestBlueprintRegistry:

    def test_resolves_by_import(self):
        registry = BlueprintRegistry()
        blueprint = registry.resolve("workflow_modules.article.workflows:PeerReviewWorkflow")
        assert isinstance(blueprint, PeerReviewWorkflow)

    def test_resolution_is_memoized_per_registry(self):
        registry = BlueprintRegistry()
        first = registry.resolve("workflow_modules.article.workflows:ArticleWorkflow")
        assert registry.resolve("workflow_modules.article.workflows:ArticleWorkflow") is first
        assert BlueprintRegistry().resolve("workflow_modules.article.workflows:ArticleWorkflow") is not first

    def test_registered_factory_wins(self):
        registry = BlueprintRegistry()
        registry.register("named-workflow", NamedWorkflow)
        assert isinstance(registry.resolve("named-workflow"), NamedWorkflow)

    def test_register_instance(self):
        registry = BlueprintRegistry()
        blueprint = NeedsArgs("plain")
        registry.register_instance(blueprint)
        assert registry.resolve(blueprint.blueprint_id) is blueprint

    def test_reregistering_drops_memoized_instance(self):
        registry = BlueprintRegistry()
        registry.register("named-workflow", NamedWorkflow)
        first = registry.resolve("named-workflow")
        registry.register("named-workflow", NamedWorkflow)
        assert registry.resolve("named-workflow") is not first

    @pytest.mark.parametrize(
        "blueprint_id",
        [
            "no-colon",
            "missing.module.for.sure:Thing",
            "workflow_modules.article.workflows:DoesNotExist",
            f"{__name__}:NOT_A_BLUEPRINT",
            "workflow_modules.article.models:Article",
        ],
    )
    def test_unresolvable_ids(self, blueprint_id):
        with pytest.raises(BlueprintNotFoundError) as exc_info:
            BlueprintRegistry().resolve(blueprint_id)
        assert exc_info.value.blueprint_id == blueprint_id
        assert exc_info.value.code == "BLUEPRINT_NOT_FOUND"

    def test_factory_returning_non_blueprint(self):
        registry = BlueprintRegistry()
        registry.register("broken", lambda: "not a blueprint")
        with pytest.raises(BlueprintNotFoundError):
            registry.resolve("broken")
