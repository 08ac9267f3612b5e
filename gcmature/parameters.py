import dataclasses
import types
import typing

from . import utils


@dataclasses.dataclass
class Parameters():
    """
    Base dataclass that contains simulation parameters.

    Inherited classes will have access to all these parameters. Sequences are
    stored as tuples so that the dataclass stays hashable and can be written
    to a json file.
    """

    updated_params_file: str | None = None
    """
    File to updated parameters (.json or .yaml). If None, then use defaults.
    """

    experiment_dir: str = 'experiments'
    """
    Directory for containing the experiment data.
    """

    history_file_name: str = 'history.pkl'
    """
    File name for writing the history pickle file.
    """

    param_file_name: str = 'parameters.json'
    """
    File name for writing the parameters of an experiment.
    """

    write_history: bool = True
    """
    Whether to write the history pickle and parameter json files after a run.
    """

    overwrite: bool = True
    """
    Whether to overwrite existing files.
    """

    seed: int = 0
    """
    The random seed for reproducibility. Each trial draws from its own
    generator seeded with (seed, trial_index).
    """

    n_trials: int = 1
    """
    The number of independent germinal-center trials to run.
    """

    plasma_target: int | None = None
    """
    Stop starting new trials once this many plasma cells have been produced.
    If None, always run n_trials trials.
    """

    cycle_limit: int = 100
    """
    The maximum number of germinal-center cycles in one trial.
    """

    resident_capacity: int = 2000
    """
    The maximum number of active B cells a germinal center can hold.
    """

    antigen_half_life: float = float('inf')
    """
    The half-life of antigen in the pool, in cycles. inf disables decay.
    """

    receptor_length: int = 20
    """
    The number of bits in each receptor and epitope.
    """

    epitope_count: int = 1
    """
    The number of distinct epitopes, keyed E1, E2, ...
    """

    antigen_specs: tuple[str, ...] = ()
    """
    Antigen definitions of the form 'AG1: E1, E2'. If empty, one single-epitope
    antigen is built for every epitope and shares its key.
    """

    vaccination_schedule: tuple[str, ...] = ()
    """
    Vaccination events of the form '0: AG1, 1.0; AG2, 2.0' or the short-hand
    '0: AG1, AG2; 3.0'. If empty, every antigen is given at cycle 0 with
    concentration total_conc / number of antigens.
    """

    total_conc: float = 1.0
    """
    The total antigen concentration of the default bolus vaccine.
    """

    mutation_death_prob: float = 0.3
    """
    The probability of death due to mutation.
    """

    mutation_silent_prob: float = 0.5
    """
    The probability of silent mutation.
    """

    match_gain: float = 1.0
    """
    Free energy gained per matching bit between receptor and epitope, in kT.
    """

    act_energy: float | None = None
    """
    Activation energy of the Hamming affinity model. If None, defaults to
    match_gain times the mean Hamming distance between random bit strings.
    """

    capture_model: str = 'CK'
    """
    Epitope capture model, 'CK' or 'LANGMUIR'.
    """

    visitation_model: str = 'FIXED_COUNT'
    """
    Antigen visitation model, 'FIXED_COUNT' or 'CLUSTER'.
    """

    visit_count: int = 1
    """
    The number of occupation draws (FIXED_COUNT) or sites (CLUSTER) per B cell.
    """

    revisit_prob: float = 0.0
    """
    Probability that a CLUSTER visit returns to the antigen seen last.
    """

    occupation_model: str = 'ALL'
    """
    Occupation model used by FIXED_COUNT visitation: 'ALL', 'ONE', 'ALL_ONE'
    or 'LANGMUIR'.
    """

    all_one_transition: int = 1
    """
    First cycle on which the ALL_ONE occupation model switches to ONE.
    """

    germline_affinity_threshold: float = 0.0
    """
    Minimum affinity against some pool epitope for a germline cell to activate.
    """

    germline_count: int = 50
    """
    The number of germline cells that found a germinal center.
    """

    replication_factor: int = 40
    """
    The number of replicas made of each germline cell in the replication cycle.
    """

    bcr_signaling_model: str = 'AFFINITY_THRESHOLD'
    """
    BCR signaling model: 'AFFINITY_THRESHOLD', 'QUANTITY_THRESHOLD' or
    'QUANTITY_LANGMUIR'.
    """

    bcr_affinity_threshold: float = 0.0
    """
    Minimum max affinity for survival under AFFINITY_THRESHOLD signaling.
    """

    bcr_quantity_threshold: float = 0.0
    """
    Minimum captured antigen for survival under QUANTITY_THRESHOLD signaling.
    """

    tcell_competition_model: str = 'ANTIGEN_QTY_RANK'
    """
    T-cell competition model: 'ANTIGEN_QTY_RANK', 'MAX_AFFINITY_RANK',
    'ANTIGEN_QTY_MEAN_RATIO' or 'WANG'.
    """

    tcell_survival_rate: float = 0.5
    """
    Fraction of cells surviving a rank-based T-cell competition.
    """

    division_model: str = 'FIXED_COUNT'
    """
    Dark-zone division model, 'FIXED_COUNT' or 'MEAN_CAPTURE_RATIO'.
    """

    division_fixed_count: int = 2
    """
    The number of division rounds under the FIXED_COUNT division model.
    """

    division_max_count: int = 5
    """
    Asymptotic maximum number of division rounds under MEAN_CAPTURE_RATIO.
    """

    memory_selection_prob: float = 0.05
    """
    The probability that a light-zone survivor exits as a memory cell.
    """

    plasma_selection_prob: float = 0.05
    """
    The probability that a qualifying light-zone survivor exits as a plasma cell.
    """

    plasma_affinity_threshold: float = 0.0
    """
    Minimum max affinity for a cell to be eligible for plasma selection.
    """

    reentry_prob: float = 0.0
    """
    The probability that a memory cell re-enters the dark zone each cycle.
    """

    @property
    def germline_attempt_limit(self) -> int:
        """Maximum number of germline draws before activation is abandoned."""
        return 10000 * self.germline_count

    @property
    def initial_population(self) -> int:
        """Active population after the replication cycle."""
        return self.germline_count * self.replication_factor

    def update_parameters_from_file(self, file_path: str | None=None) -> None:
        """Update parameter from default by reading file, if file is not None.

        Args:
            file_path: path to the json or yaml file containing new parameters.
        """
        self.updated_params_file = file_path
        if self.updated_params_file:
            updated_params = utils.read_parameter_file(file_path)
            field_types = {
                field.name: field.type for field in dataclasses.fields(Parameters)
            }
            for key, value in updated_params.items():
                #check that parameter is in attributes
                if not hasattr(self, key) or key not in field_types:
                    raise AttributeError(f"The parameter '{key}' is not a valid attribute of the Parameters class.")
                expected_type = self._castable_type(field_types[key])
                if expected_type is tuple and isinstance(value, str):
                    value = [value]
                if value is not None and expected_type is not None:
                    try:
                        # Attempt to cast the value to the expected type
                        value = expected_type(value)
                    except (TypeError, ValueError) as e:
                        # Raise TypeError with additional information if casting fails
                        raise TypeError(f"Cannot cast value '{value}' to type {expected_type} for attribute '{key}': {e}")
                setattr(self, key, value)

    @staticmethod
    def _castable_type(annotation) -> type | None:
        """Reduce an annotation such as ``float | None`` or ``tuple[str, ...]``
        to a callable type."""
        if isinstance(annotation, types.UnionType):
            args = [arg for arg in annotation.__args__ if arg is not type(None)]
            return Parameters._castable_type(args[0]) if len(args) == 1 else None
        origin = typing.get_origin(annotation)
        if origin is not None:
            return origin
        return annotation if isinstance(annotation, type) else None

    def get_parameter_dict(self) -> dict:
        """Parameters as a plain dict.

        Properties from Parameter class are not included.
        """
        return {
            field.name: getattr(self, field.name)
            for field in dataclasses.fields(Parameters)
        }
