r"""
Model of germinal-center affinity maturation
============================================

The module `gcmature` contains a `GerminalCenter` class which runs one
affinity-maturation trial, a `BCell` lineage model, an `AntigenPool` with
weighted random sampling, and pluggable strategy models for affinity,
antigen capture, visitation, apoptosis, division and selection. The
`Simulation` class runs many independent trials from a parameter file.

In each germinal-center cycle, B cells divide and mutate in the dark zone,
then search for antigen in the light zone where they compete for BCR
signaling and T-cell help. Survivors may exit as memory or antibody-secreting
plasma cells; the plasma-cell receptors of a trial form its antibody
repertoire.
"""
