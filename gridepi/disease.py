"""Round stepper — per-individual infection state machine.

Implements, once per individual per round and in this precedence order:
  1. Resolution of a current infection (→ DEAD, or → RECOVERED, optionally
     → IMMUNE in the same round)
  2. Immunity aging
  3. Waning-immunity reinfection (IMMUNE → INFECTED at 1% per round once
     immunity has lasted immunity_reinfection_rounds)
  4. Contact transmission
       proximity: every other INFECTED individual within the threshold
                  on both axes is a contact; one draw per contact at
                  CONTACT_TRANSMISSION_PROB, first success infects
       shuffle:   one partner per individual from a per-round shuffle;
                  one draw at infection_chance
  5. Age-dependent baseline infection (young 1%, old 2%)

A rule only fires if no earlier rule changed the individual's state
this round. Contact scans read the input snapshot only; all writes go to
a copy, so the order in which individuals are visited cannot bias who
gets infected.

Random draws are consumed in id order, rule by rule, so replaying the
same generator state against the same input gives a bit-identical
output.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from gridepi.config import SimulationParameters, validate_parameters
from gridepi.population import check_invariants
from gridepi.types import AgeClass, InfectionState


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

CONTACT_TRANSMISSION_PROB = 0.025   # per qualifying contact, proximity model
WANING_REINFECTION_PROB = 0.01      # per round once immunity has waned

# Indexed by AgeClass value
BASELINE_INFECTION_PROB = np.array([
    0.01,   # YOUNG
    0.02,   # OLD
], dtype=np.float64)


# ═══════════════════════════════════════════════════════════════════════
# PROBABILITY HELPERS
# ═══════════════════════════════════════════════════════════════════════

def contact_probability(params: SimulationParameters) -> float:
    """Per-contact transmission probability for the configured contact model.

    Flu season multiplies the base probability; the result is clipped to 1.
    """
    if params.contact_model == "shuffle":
        p = params.infection_chance / 100.0
    else:
        p = CONTACT_TRANSMISSION_PROB
    if params.flu_season_active:
        p *= params.flu_season_multiplier
    return min(p, 1.0)


def baseline_probability(age_class: int) -> float:
    """Ambient infection probability for an age class."""
    return float(BASELINE_INFECTION_PROB[AgeClass(age_class)])


def is_susceptible(state: int, params: SimulationParameters) -> bool:
    """Whether an individual in `state` can be infected by rules 4 and 5."""
    if state == InfectionState.HEALTHY:
        return True
    return state == InfectionState.RECOVERED and params.recovered_susceptible


def contact_counts(population: np.ndarray, threshold: float) -> np.ndarray:
    """Number of other INFECTED individuals within `threshold` on both axes.

    Contacts are counted in the Chebyshev metric with a strict bound,
    i.e. |dx| < threshold and |dy| < threshold.

    Returns:
        int64 array of shape (N,).
    """
    n = len(population)
    infected = population['state'] == InfectionState.INFECTED
    if n == 0 or not np.any(infected):
        return np.zeros(n, dtype=np.int64)

    coords = np.column_stack((population['x'], population['y']))
    tree = cKDTree(coords[infected])
    # query_ball_point is inclusive; step just below the threshold
    radius = np.nextafter(threshold, 0.0)
    counts = tree.query_ball_point(coords, r=radius, p=np.inf, return_length=True)
    return np.asarray(counts, dtype=np.int64) - infected.astype(np.int64)


def shuffle_partners(n: int, rng: np.random.Generator) -> np.ndarray:
    """Pair each individual with the next one in a random shuffle.

    Returns:
        partners[i] = index of i's partner this round (i itself when n == 1).
    """
    order = rng.permutation(n)
    partners = np.empty(n, dtype=np.int64)
    partners[order] = np.roll(order, -1)
    return partners


# ═══════════════════════════════════════════════════════════════════════
# ROUND STEPPER
# ═══════════════════════════════════════════════════════════════════════

def advance_round(
    population: np.ndarray,
    parameters: Optional[SimulationParameters] = None,
    rng: Optional[np.random.Generator] = None,
    validate: bool = False,
) -> np.ndarray:
    """Produce the next population snapshot.

    Args:
        population: Current snapshot (INDIVIDUAL_DTYPE). Not modified.
        parameters: Transition parameters; defaults if None.
        rng: Source of uniform draws. A fresh, unseeded generator is
            used if None.
        validate: If True, check record invariants on the output and
            raise InvariantViolation on failure.

    Returns:
        New snapshot array of the same length.

    Raises:
        ConfigurationError: If parameters are invalid.
        InvariantViolation: If validate is True and a record is malformed.
    """
    if parameters is None:
        parameters = SimulationParameters()
    validate_parameters(parameters)
    if rng is None:
        rng = np.random.default_rng()

    prev_state = population['state']
    n = len(population)

    nxt = population.copy()
    state = nxt['state']
    days = nxt['days_infected']
    immune_rounds = nxt['rounds_since_immune']
    reinfected = nxt['has_been_reinfected']

    p_contact = contact_probability(parameters)
    p_immune = parameters.immunity_chance / 100.0
    p_death = parameters.death_rate / 100.0

    partners = None
    n_contacts = None
    if parameters.contact_model == "shuffle":
        partners = shuffle_partners(n, rng)
    else:
        n_contacts = contact_counts(population, parameters.proximity_threshold)

    for i in range(n):
        s = prev_state[i]
        if s == InfectionState.DEAD:
            continue

        # ── Rule 1: resolve current infection ───────────────────────
        if s == InfectionState.INFECTED:
            days[i] += 1
            if days[i] >= parameters.recovery_delay_days:
                days[i] = 0
                if parameters.models_deaths and rng.random() < p_death:
                    state[i] = InfectionState.DEAD
                elif rng.random() < p_immune:
                    state[i] = InfectionState.IMMUNE
                    immune_rounds[i] = 0
                else:
                    state[i] = InfectionState.RECOVERED
            continue

        # ── Rules 2–3: immunity aging and waning ────────────────────
        if s == InfectionState.IMMUNE:
            immune_rounds[i] += 1
            if (immune_rounds[i] >= parameters.immunity_reinfection_rounds
                    and rng.random() < WANING_REINFECTION_PROB):
                state[i] = InfectionState.INFECTED
                days[i] = 1
                immune_rounds[i] = 0
                reinfected[i] = True
            continue

        if not is_susceptible(s, parameters):
            continue

        # ── Rule 4: contact transmission (reads previous snapshot) ──
        if partners is None:
            for _ in range(int(n_contacts[i])):
                if rng.random() < p_contact:
                    state[i] = InfectionState.INFECTED
                    days[i] = 0
                    break
        else:
            j = partners[i]
            if (j != i and prev_state[j] == InfectionState.INFECTED
                    and rng.random() < p_contact):
                state[i] = InfectionState.INFECTED
                days[i] = 0
        if state[i] != s:
            continue

        # ── Rule 5: baseline infection ──────────────────────────────
        if parameters.baseline_infection and not reinfected[i]:
            if rng.random() < baseline_probability(population['age_class'][i]):
                state[i] = InfectionState.INFECTED
                days[i] = 0

    if validate:
        check_invariants(nxt, reference=population)
    return nxt
