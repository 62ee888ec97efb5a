# Adaptive resampling: elimination of statistically inferior candidates
#
# Scores arrive as a resample x candidate table of the primary metric (NaN
# for failed tasks). After each round the current leader is compared with
# every other survivor and candidates that trail it significantly are
# dropped from further resampling.

import logging

import numpy as np
import pandas as pd
from scipy import stats

logger = logging.getLogger(__name__)


def _oriented(scores, maximize):
    """Flip signs so that smaller is always better."""
    return -scores if maximize else scores


def _leader(means):
    return means.idxmin()


def gls_pvalues(scores, maximize=False):
    """
    One-sided p-values of each candidate trailing the leader.

    Fits the additive model score = candidate + resample + error on the
    complete blocks (resamples scored for every candidate). This is the GLS
    fit under an exchangeable within-resample covariance; the pooled
    residual variance with (r - 1)(c - 1) degrees of freedom gives the
    standard error of every difference from the leader.

    Returns (leader_id, {candidate_id: p_value}); empty dict when there are
    fewer than two complete blocks or two candidates.
    """
    block = _oriented(scores, maximize).dropna(axis=0, how='any')
    n_blocks, n_candidates = block.shape
    if n_blocks < 2 or n_candidates < 2:
        means = _oriented(scores, maximize).mean(axis=0)
        return (_leader(means) if means.notna().any() else None), {}

    values = block.to_numpy(dtype=float)
    col_means = values.mean(axis=0)
    row_means = values.mean(axis=1, keepdims=True)
    grand = values.mean()
    resid = values - row_means - col_means[np.newaxis, :] + grand
    dof = (n_blocks - 1) * (n_candidates - 1)
    sigma2 = float((resid ** 2).sum() / dof)
    se = np.sqrt(2.0 * sigma2 / n_blocks)

    means = pd.Series(col_means, index=block.columns)
    leader = _leader(means)

    pvalues = {}
    for cand in block.columns:
        if cand == leader:
            continue
        diff = means[cand] - means[leader]
        if se <= 0:
            pvalues[cand] = 0.0 if diff > 0 else 1.0
        else:
            pvalues[cand] = float(stats.t.sf(diff / se, dof))
    return leader, pvalues


def paired_pvalues(scores, maximize=False):
    """
    One-sided paired t-test p-values of each candidate trailing the leader,
    using the resamples both have scored.
    """
    oriented = _oriented(scores, maximize)
    means = oriented.mean(axis=0, skipna=True)
    if not means.notna().any():
        return None, {}
    leader = _leader(means)

    pvalues = {}
    for cand in oriented.columns:
        if cand == leader:
            continue
        pair = oriented[[cand, leader]].dropna(axis=0, how='any')
        if len(pair) < 2:
            continue
        diff = pair[cand].to_numpy() - pair[leader].to_numpy()
        if np.allclose(diff, diff[0]):
            pvalues[cand] = 0.0 if diff[0] > 0 else 1.0
            continue
        result = stats.ttest_rel(pair[cand], pair[leader], alternative='greater')
        pvalues[cand] = float(result.pvalue)
    return leader, pvalues


ELIMINATION_RULES = {
    'gls': gls_pvalues,
    'paired': paired_pvalues,
}


def eliminate(scores, maximize=False, alpha=0.05, method='gls'):
    """
    Return the candidate ids that survive this round, in column order.

    Args:
        scores: DataFrame, rows = resamples, columns = candidate ids
        maximize: whether larger scores are better
        alpha: significance threshold; candidates with p < alpha are dropped
        method: 'gls' or 'paired'

    Candidates with no finite score are dropped. The leader always survives.
    """
    try:
        rule = ELIMINATION_RULES[method]
    except KeyError:
        raise ValueError(f"Unknown elimination method '{method}'. Allowed: {sorted(ELIMINATION_RULES)}") from None

    scored = scores.loc[:, scores.notna().any(axis=0)]
    if scored.shape[1] == 0:
        return []

    leader, pvalues = rule(scored, maximize=maximize)
    dropped = {cand for cand, p in pvalues.items() if p < alpha}
    survivors = [cand for cand in scored.columns if cand not in dropped or cand == leader]

    if dropped:
        logger.info(
            "Adaptive elimination (%s, alpha=%.3g) after %d resamples: dropped %d, %d remain (leader=%s)",
            method, alpha, len(scores), len(dropped), len(survivors), leader,
        )
    return survivors
