from .stats import stats
