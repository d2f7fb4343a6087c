import warnings

import pytest

from dsse_residuals import (
    CriterionFamilyMismatchError,
    Measurement,
    MissingCriterionError,
    SESettings,
    UnknownCriterionError,
    assign_criteria,
    resolve_criteria,
)
from dsse_residuals.errors import InvalidParameterError


def _normal(id_, crit=None):
    return Measurement.normal(id_, f"x_{id_}", mu=1.0, sigma=0.01, crit=crit)


def _weibull(id_, crit=None):
    return Measurement.from_distribution(
        id_, f"x_{id_}", "Weibull", shape=2.0, scale=0.5, crit=crit
    )


def test_defaults_depend_on_family():
    assignment = resolve_criteria([_normal("m1"), _weibull("m2")], SESettings())
    assert dict(assignment) == {"m1": "rwlav", "m2": "mle"}


def test_crit_is_honored_when_no_global_criterion_is_set():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assignment = resolve_criteria(
            [_normal("m1", crit="wls"), _normal("m2"), _weibull("m3", crit="gmm")], SESettings()
        )
    assert dict(assignment) == {"m1": "wls", "m2": "rwlav", "m3": "gmm"}


def test_crit_without_global_criterion_is_checked_against_family():
    with pytest.raises(CriterionFamilyMismatchError):
        resolve_criteria([_weibull("m3", crit="rwls")], SESettings())


def test_global_criterion_applies_to_every_measurement():
    ms = [_normal("m1"), _normal("m2")]
    assignment = resolve_criteria(ms, SESettings(criterion="wls"))
    assert set(assignment.values()) == {"wls"}


def test_global_gaussian_criterion_rejects_non_gaussian_family():
    with pytest.raises(CriterionFamilyMismatchError, match="requires a Normal"):
        resolve_criteria([_normal("m1"), _weibull("m2")], SESettings(criterion="rwlav"))


def test_mle_and_gmm_accept_any_family():
    ms = [_weibull("m2")]
    assert resolve_criteria(ms, SESettings(criterion="mle"))["m2"] == "mle"
    assert resolve_criteria(ms, SESettings(criterion="gmm"))["m2"] == "gmm"


def test_gmm_on_normal_warns():
    with pytest.warns(UserWarning, match="'gmm' on a Normal"):
        resolve_criteria([_normal("m1")], SESettings(criterion="gmm"))


def test_mixed_copies_per_measurement_crit():
    ms = [_normal("m1", crit="wls"), _normal("m2", crit="rwls"), _weibull("m3", crit="mle")]
    assignment = resolve_criteria(ms, SESettings(criterion="mixed"))
    assert dict(assignment) == {"m1": "wls", "m2": "rwls", "m3": "mle"}


def test_mixed_without_crit_raises_and_names_measurements():
    ms = [_normal("m1", crit="wls"), _normal("m2"), _weibull("m3")]
    with pytest.raises(MissingCriterionError) as info:
        resolve_criteria(ms, SESettings(criterion="mixed"))
    assert info.value.ids == ("m2", "m3")


def test_mixed_checks_family_compatibility():
    with pytest.raises(CriterionFamilyMismatchError):
        resolve_criteria([_weibull("m3", crit="wlav")], SESettings(criterion="mixed"))


def test_per_measurement_crit_ignored_outside_mixed_mode_warns():
    with pytest.warns(UserWarning, match="Ignoring per-measurement 'crit'"):
        assignment = resolve_criteria([_normal("m1", crit="wls")], SESettings(criterion="rwls"))
    assert assignment["m1"] == "rwls"


def test_matching_crit_does_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        resolve_criteria([_normal("m1", crit="rwls")], SESettings(criterion="rwls"))


def test_unknown_criteria_raise():
    with pytest.raises(UnknownCriterionError):
        SESettings(criterion="huber")
    with pytest.raises(UnknownCriterionError):
        _normal("m1", crit="huber")
    with pytest.raises(UnknownCriterionError):
        _normal("m1", crit="mixed")


def test_assignment_is_read_only():
    assignment = resolve_criteria([_normal("m1")], SESettings())
    with pytest.raises(TypeError):
        assignment["m1"] = "wls"  # type: ignore[index]


def test_assign_criteria_returns_copies():
    ms = (_normal("m1"), _weibull("m2"))
    out = assign_criteria(ms, SESettings())
    assert [m.criterion for m in out] == ["rwlav", "mle"]
    assert all(m.criterion is None for m in ms)


def test_resolution_is_recomputed_for_new_settings():
    ms = [_normal("m1")]
    assert resolve_criteria(ms, SESettings())["m1"] == "rwlav"
    assert resolve_criteria(ms, SESettings(criterion="wlav"))["m1"] == "wlav"


def test_duplicate_ids_rejected():
    with pytest.raises(InvalidParameterError, match="Duplicate measurement ids"):
        resolve_criteria([_normal("m1"), _normal("m1")], SESettings())
