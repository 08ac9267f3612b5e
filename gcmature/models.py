r"""
Model bundle
============

`Models` holds one instance of every strategy a germinal-center trial
consumes, together with the trial's random generator. A bundle is built per
trial with `Models.from_parameters`, so independent trials never share
mutable strategy state.
"""
import dataclasses

import numpy as np

from .binding import (
    AffinityModel,
    CKCaptureModel,
    EpitopeCaptureModel,
    EpitopeCaptureType,
    HammingAffinity,
    LangmuirCaptureModel,
)
from .apoptosis import ApoptosisModel
from .bcells import ANTIGEN_QTY_KEY, MAX_AFFINITY_KEY
from .competition import (
    MeanRatioCompetition,
    RankCompetition,
    TCellCompetitionType,
    WangCellCompetition,
)
from .division import (
    DZDivisionModel,
    DZDivisionType,
    FixedCountDivision,
    MeanCaptureRatioDivision,
)
from .germline import GermlineActivationModel
from .parameters import Parameters
from .receptors import Mutator, ReceptorGenerator
from .selection import MemorySelectionModel, PlasmaSelectionModel, ReentryModel, SelectionModel
from .signaling import BCRSignalingType, QuantityLangmuirSignaling, ThresholdSignaling
from .visitation import (
    AllOccupationModel,
    AllOneOccupationModel,
    ClusterVisitation,
    FixedCountVisitation,
    LangmuirOccupationModel,
    OccupationModel,
    OccupationType,
    OneOccupationModel,
    VisitationModel,
    VisitationType,
)


def _resolve(enum_cls, name: str):
    """Look up an enumerated model type by name."""
    try:
        return enum_cls(str(name).upper())
    except ValueError:
        valid = ', '.join(member.value for member in enum_cls)
        raise ValueError(f"Unknown {enum_cls.__name__} '{name}'. Expected one of: {valid}.")


@dataclasses.dataclass
class Models():
    """Strategy objects of one germinal-center trial."""

    rng: np.random.Generator
    receptor_generator: ReceptorGenerator
    mutator: Mutator
    affinity_model: AffinityModel
    capture_model: EpitopeCaptureModel
    visitation_model: VisitationModel
    germline_model: GermlineActivationModel
    bcr_signaling_model: ApoptosisModel
    tcell_competition_model: ApoptosisModel
    division_model: DZDivisionModel
    memory_selection_model: SelectionModel
    plasma_selection_model: SelectionModel
    reentry_model: SelectionModel

    @classmethod
    def from_parameters(cls, params: Parameters, rng: np.random.Generator) -> 'Models':
        """Build every strategy named in params, drawing randomness from rng.

        Raises:
            ValueError: if a model type name is unknown or a parameter is out
                of range for its model.
        """
        if params.act_energy is None:
            affinity_model = HammingAffinity.with_default_energy(params.match_gain, params.receptor_length)
        else:
            affinity_model = HammingAffinity(params.match_gain, params.act_energy)

        return cls(
            rng=rng,
            receptor_generator=ReceptorGenerator(rng, params.receptor_length),
            mutator=Mutator(rng, params.mutation_death_prob, params.mutation_silent_prob),
            affinity_model=affinity_model,
            capture_model=cls.create_capture_model(params, rng),
            visitation_model=cls.create_visitation_model(params, rng),
            germline_model=GermlineActivationModel(
                affinity_model,
                params.germline_affinity_threshold,
                params.germline_count,
                params.replication_factor,
            ),
            bcr_signaling_model=cls.create_bcr_signaling_model(params, rng),
            tcell_competition_model=cls.create_tcell_competition_model(params, rng),
            division_model=cls.create_division_model(params, rng),
            memory_selection_model=MemorySelectionModel(params.memory_selection_prob, rng),
            plasma_selection_model=PlasmaSelectionModel(
                params.plasma_affinity_threshold, params.plasma_selection_prob, rng
            ),
            reentry_model=ReentryModel(params.reentry_prob, rng),
        )

    @staticmethod
    def create_capture_model(params: Parameters, rng: np.random.Generator) -> EpitopeCaptureModel:
        capture_type = _resolve(EpitopeCaptureType, params.capture_model)
        if capture_type == EpitopeCaptureType.LANGMUIR:
            return LangmuirCaptureModel(rng)
        return CKCaptureModel()

    @staticmethod
    def create_occupation_model(params: Parameters, rng: np.random.Generator) -> OccupationModel:
        occupation_type = _resolve(OccupationType, params.occupation_model)
        if occupation_type == OccupationType.ALL:
            return AllOccupationModel()
        elif occupation_type == OccupationType.ONE:
            return OneOccupationModel(rng)
        elif occupation_type == OccupationType.ALL_ONE:
            return AllOneOccupationModel(params.all_one_transition, rng)
        return LangmuirOccupationModel(rng)

    @staticmethod
    def create_visitation_model(params: Parameters, rng: np.random.Generator) -> VisitationModel:
        visitation_type = _resolve(VisitationType, params.visitation_model)
        if visitation_type == VisitationType.CLUSTER:
            return ClusterVisitation(params.visit_count, params.revisit_prob, rng)
        return FixedCountVisitation(params.visit_count, Models.create_occupation_model(params, rng))

    @staticmethod
    def create_bcr_signaling_model(params: Parameters, rng: np.random.Generator) -> ApoptosisModel:
        signaling_type = _resolve(BCRSignalingType, params.bcr_signaling_model)
        if signaling_type == BCRSignalingType.AFFINITY_THRESHOLD:
            return ThresholdSignaling.affinity(params.bcr_affinity_threshold)
        elif signaling_type == BCRSignalingType.QUANTITY_THRESHOLD:
            return ThresholdSignaling.quantity(params.bcr_quantity_threshold)
        return QuantityLangmuirSignaling(rng)

    @staticmethod
    def create_tcell_competition_model(params: Parameters, rng: np.random.Generator) -> ApoptosisModel:
        competition_type = _resolve(TCellCompetitionType, params.tcell_competition_model)
        if competition_type == TCellCompetitionType.ANTIGEN_QTY_RANK:
            return RankCompetition(params.tcell_survival_rate, ANTIGEN_QTY_KEY)
        elif competition_type == TCellCompetitionType.MAX_AFFINITY_RANK:
            return RankCompetition(params.tcell_survival_rate, MAX_AFFINITY_KEY)
        elif competition_type == TCellCompetitionType.ANTIGEN_QTY_MEAN_RATIO:
            return MeanRatioCompetition(ANTIGEN_QTY_KEY, rng)
        return WangCellCompetition(rng)

    @staticmethod
    def create_division_model(params: Parameters, rng: np.random.Generator) -> DZDivisionModel:
        division_type = _resolve(DZDivisionType, params.division_model)
        if division_type == DZDivisionType.MEAN_CAPTURE_RATIO:
            return MeanCaptureRatioDivision(params.division_max_count, rng)
        return FixedCountDivision(params.division_fixed_count)
