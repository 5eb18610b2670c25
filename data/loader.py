import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from src.models.rating_index import RatingIndex

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent / 'datasets'

RATINGS_FILE = 'ratings.csv'
PRODUCTS_FILE = 'products.csv'

MIN_RATING = 1.0
MAX_RATING = 5.0

_RATING_COLUMNS = {'user_id': 'UserID', 'product_id': 'ProductID', 'rating': 'Rating'}
_PRODUCT_COLUMNS = {'product_id': 'ProductID', 'name': 'Name', 'category': 'Category', 'price': 'Price'}


@dataclass(frozen=True, kw_only=True)
class LoadedTable:
    frame: pd.DataFrame
    n_skipped: int


@dataclass(frozen=True, kw_only=True)
class Dataset:
    ratings: pd.DataFrame
    products: pd.DataFrame
    index: RatingIndex
    n_skipped_ratings: int
    n_skipped_products: int


def _read_raw(path: Path, columns: dict[str, str]) -> tuple[pd.DataFrame, int]:
    """Read every field as text; returns the frame and the count of unparseable lines."""
    bad_lines: list[list[str]] = []

    def _skip(line: list[str]) -> None:
        bad_lines.append(line)
        return None

    raw = pd.read_csv(
        path,
        dtype=str,
        engine='python',
        skipinitialspace=True,
        keep_default_na=False,
        on_bad_lines=_skip,
    )
    raw.columns = [c.strip().lower() for c in raw.columns]
    missing = [c for c in columns if c not in raw.columns]
    if missing:
        raise ValueError(f'{path}: missing required columns {missing}')
    return raw[list(columns)].rename(columns=columns).fillna(''), len(bad_lines)


def _integral_ids(values: pd.Series) -> tuple[pd.Series, pd.Series]:
    numeric = pd.to_numeric(values.str.strip(), errors='coerce')
    valid = numeric.notna() & np.isfinite(numeric) & (numeric == np.floor(numeric))
    return numeric, valid


def load_ratings(
    path: str | Path = _DATA_DIR / RATINGS_FILE,
    min_rating: float = MIN_RATING,
    max_rating: float = MAX_RATING,
) -> LoadedTable:
    """Read ``user_id,product_id,rating`` rows, skipping malformed ones.

    A row is skipped when an id is missing or not an integer, or when the
    rating is missing, non-numeric or outside ``[min_rating, max_rating]``.
    Duplicate (user, product) rows are kept in file order; the rating index
    resolves them by letting the last one win.
    """
    raw, n_bad_lines = _read_raw(Path(path), _RATING_COLUMNS)

    user_ids, valid_user = _integral_ids(raw['UserID'])
    product_ids, valid_product = _integral_ids(raw['ProductID'])
    rating = pd.to_numeric(raw['Rating'].str.strip(), errors='coerce')
    valid_rating = rating.notna() & (rating >= min_rating) & (rating <= max_rating)

    valid = valid_user & valid_product & valid_rating
    n_skipped = int((~valid).sum()) + n_bad_lines
    if n_skipped:
        logger.warning('Skipped %d malformed rating rows in %s', n_skipped, path)

    frame = pd.DataFrame({
        'UserID': user_ids[valid].astype(np.int64),
        'ProductID': product_ids[valid].astype(np.int64),
        'Rating': rating[valid].astype(np.float64),
    }).reset_index(drop=True)

    logger.info('Loaded %d ratings from %s', len(frame), path)
    return LoadedTable(frame=frame, n_skipped=n_skipped)


def load_products(path: str | Path = _DATA_DIR / PRODUCTS_FILE) -> LoadedTable:
    """Read ``product_id,name,category,price`` rows, skipping malformed ones."""
    raw, n_bad_lines = _read_raw(Path(path), _PRODUCT_COLUMNS)

    product_ids, valid_id = _integral_ids(raw['ProductID'])
    name = raw['Name'].str.strip()
    category = raw['Category'].str.strip()
    price = pd.to_numeric(raw['Price'].str.strip(), errors='coerce')

    valid = valid_id & (name != '') & (category != '') & price.notna() & (price >= 0)
    n_skipped = int((~valid).sum()) + n_bad_lines
    if n_skipped:
        logger.warning('Skipped %d malformed product rows in %s', n_skipped, path)

    frame = pd.DataFrame({
        'ProductID': product_ids[valid].astype(np.int64),
        'Name': name[valid],
        'Category': category[valid],
        'Price': price[valid].astype(np.float64),
    })
    frame = frame.drop_duplicates('ProductID', keep='last').reset_index(drop=True)

    logger.info('Loaded %d products from %s', len(frame), path)
    return LoadedTable(frame=frame, n_skipped=n_skipped)


def load_dataset(data_dir: str | Path | None = None) -> Dataset:
    data_dir = Path(data_dir) if data_dir is not None else _DATA_DIR

    ratings = load_ratings(data_dir / RATINGS_FILE)
    products = load_products(data_dir / PRODUCTS_FILE)
    index = RatingIndex.from_frame(ratings.frame)

    logger.info(
        'Dataset ready: %d products | %d users | %d ratings',
        len(products.frame),
        len(index.by_user),
        index.n_ratings,
    )
    return Dataset(
        ratings=ratings.frame,
        products=products.frame,
        index=index,
        n_skipped_ratings=ratings.n_skipped,
        n_skipped_products=products.n_skipped,
    )
