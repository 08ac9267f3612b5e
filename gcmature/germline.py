r"""
Germline activation
===================

A germinal center is founded by germline B cells whose randomly drawn
receptors bind some epitope in the antigen pool at least as tightly as an
activation threshold. In the replication cycle each founder is copied a
fixed number of times without mutation.
"""
from .binding import AffinityModel
from .antigens import AntigenPool
from .bcells import BCell, Lineage
from .receptors import BitString


class GermlineActivationModel():
    """Draws and replicates the founder cells of a germinal center.

    Attributes:
        affinity_threshold: minimum affinity (kT) against any pool epitope.
        germline_count: number of founders to activate.
        replication_factor: replicas of each founder in the replication cycle.
        affinity_model: used to test candidate receptors.
        attempt_limit: candidates drawn before activation is abandoned.
    """

    DEFAULT_AFFINITY_THRESHOLD = 0.0
    DEFAULT_GERMLINE_COUNT = 50
    DEFAULT_REPLICATION_FACTOR = 40

    def __init__(
        self,
        affinity_model: AffinityModel,
        affinity_threshold: float=DEFAULT_AFFINITY_THRESHOLD,
        germline_count: int=DEFAULT_GERMLINE_COUNT,
        replication_factor: int=DEFAULT_REPLICATION_FACTOR,
    ):
        if germline_count < 1:
            raise ValueError('Germline count must be positive.')
        if replication_factor < 1:
            raise ValueError('Replication factor must be positive.')
        self.affinity_model = affinity_model
        self.affinity_threshold = affinity_threshold
        self.germline_count = germline_count
        self.replication_factor = replication_factor
        self.attempt_limit = 10000 * germline_count

    def is_activated(self, receptor: BitString, epitopes) -> bool:
        return any(
            self.affinity_model.compute_affinity(epitope, receptor) >= self.affinity_threshold
            for epitope in epitopes
        )

    def activate(self, lineage: Lineage, pool: AntigenPool) -> set[BCell]:
        """Draw candidate receptors until germline_count of them activate.

        Only activated candidates are added to the lineage.

        Raises:
            RuntimeError: if attempt_limit candidates yield too few founders.
        """
        epitopes = list(dict.fromkeys(
            epitope for antigen in pool.list_antigens() for epitope in antigen.epitopes
        ))
        generator = lineage.models.receptor_generator
        germlines = set()
        attempts = 0
        while len(germlines) < self.germline_count and attempts < self.attempt_limit:
            receptor = generator.generate()
            if self.is_activated(receptor, epitopes):
                germlines.add(lineage.germline(receptor))
            attempts += 1
        if len(germlines) != self.germline_count:
            raise RuntimeError('Failed to generate germline cells.')
        return germlines

    def replicate(self, germlines) -> set[BCell]:
        """replication_factor identical daughters of every founder."""
        return {
            germline.replicate()
            for germline in germlines
            for _ in range(self.replication_factor)
        }
