"""
Implements classic learning vector quantization (LVQ1), a prototype-based
supervised classifier as described in

Kohonen, T. (1990). The self-organizing map. Proceedings of the IEEE,
78(9), 1464-1480. doi:10.1109/5.58325

Training vectors are flat float vectors whose last slot holds the
non-negative integer label id. A fixed number of prototypes is
initialized from the training data and then moved towards (same label)
or away from (different label) every training vector they win.
"""

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.

# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import sys
import threading
import time

import numpy as np
from loguru import logger
from sklearn.utils import check_random_state
from tqdm.auto import tqdm

from lvq_distances import METRICS, resolve_metric
from lvq_initialization import resolve_initializer
from lvq_normalization import resolve_normalizer
from lvq_validation import check_n_prototypes, check_params, check_training_set

__license__ = 'GPLv3'
__version__ = '1.0.0'

# Fields copied by copy_basic_configuration() and stored in snapshots.
BASIC_CONFIGURATION = (
    'learn_rate',
    'quit_learn_rate',
    'linear_decay',
    'momentum',
    'max_epochs',
    'progress_report_period',
    'snapshot_period',
    'yield_between_epochs',
)

# Learned state besides the prototype set.
INTERNALS = (
    'current_epoch',
    'current_learn_rate',
    'last_train_error_square',
    'last_winner_distance',
)

_INTERNAL_SINK_ID = None


def _install_internal_sink():
    """ Adds the stderr sink used by logging_strategy='internal', once per process. """
    global _INTERNAL_SINK_ID
    if _INTERNAL_SINK_ID is None:
        _INTERNAL_SINK_ID = logger.add(
            sys.stderr,
            level="DEBUG",
            format="[{time:HH:mm:ss}] [LVQ/{thread.name}] {level: <5} : {message}",
            filter=lambda record: record["extra"].get("lvq_internal", False),
        )


class LVQNN:
    """ An LVQ model bound to one training set.

    The life cycle is: construct, optionally normalize_input(),
    initialize_weights(), train(), then classify(). Alternatively the
    learned state can be restored from a snapshot and train() resumes
    where the snapshot left off.

    Attributes
    ----------
    train_data: array_like
        (n_samples, vec_len) training vectors, label id in the last column.
        Float arrays are used without copying.
    n_prototypes: int
        Number of prototypes, in [1, n_samples].
    learn_rate: float (optional, default=0.3)
        Base learn rate, in (0, 1].
    quit_learn_rate: float (optional, default=0.001)
        Training stops once the current learn rate drops to this value.
    linear_decay: bool (optional, default=False)
        If True, the learn rate decays linearly over max_epochs, otherwise
        it is multiplied by momentum after every epoch.
    momentum: float (optional, default=0.98)
        Geometric decay factor, in (0, 1).
    max_epochs: int (optional, default=1000)
        Upper bound on the number of epochs.
    progress_report_period: int (optional, default=5)
        Log progress every this many epochs; 0 disables progress logging.
    snapshot_period: int (optional, default=-1)
        -1 never saves, 0 saves when training ends, N > 0 additionally
        saves after every Nth epoch.
    yield_between_epochs: bool (optional, default=False)
        Give up the CPU between epochs.
    random_state: None, int or RandomState (optional)
        Random source of the initializers.
    metric: str or callable (optional, default='euclidean')
        Distance metric, see lvq_distances. A callable is invoked as
        metric(prototype, vector) and must return a single float.
    normalizer: None, str or callable (optional, default=None)
        Per-vector normalization, see lvq_normalization.
    initializer: str or callable (optional, default='n_random')
        Prototype initialization, see lvq_initialization.
    listener: callable (optional)
        Called as listener(model, epoch, learn_rate, error_square, finished)
        after every epoch. Exceptions raised by it are logged and ignored.
    serializer: ModelSerializer (optional)
        Target of save_snapshot() and restore_from_snapshot().
    logging_strategy: str (optional, default='default')
        'default' logs through the configured loguru sinks, 'internal'
        additionally installs a stderr sink for engine records, 'off'
        disables engine logging.
    progress_bar: bool (optional, default=False)
        Show a tqdm bar over the epochs.
    weights: array_like
        (n_prototypes, vec_len) prototype set. None until
        initialize_weights() or a snapshot restore.
    current_epoch: int
        Number of completed epochs.
    current_learn_rate: float
        Learn rate used by the next epoch.
    last_train_error_square: float
        Sum of squared feature errors of the last completed epoch.
    last_winner_distance: float
        Distance of the most recent best matching unit.
    """

    def __init__(self, train_data, n_prototypes, *, learn_rate=0.3,
                 quit_learn_rate=0.001, linear_decay=False, momentum=0.98,
                 max_epochs=1000, progress_report_period=5,
                 snapshot_period=-1, yield_between_epochs=False,
                 random_state=None, metric='euclidean', normalizer=None,
                 initializer='n_random', listener=None, serializer=None,
                 logging_strategy='default', progress_bar=False):
        train_data = check_training_set(train_data)
        self.n_prototypes = check_n_prototypes(n_prototypes, len(train_data))
        self.train_data = train_data

        self.learn_rate = learn_rate
        self.quit_learn_rate = quit_learn_rate
        self.linear_decay = linear_decay
        self.momentum = momentum
        self.max_epochs = max_epochs
        self.progress_report_period = progress_report_period
        self.snapshot_period = snapshot_period
        self.yield_between_epochs = yield_between_epochs
        self.logging_strategy = logging_strategy
        self.progress_bar = progress_bar
        self._check_params()

        self.rng = check_random_state(random_state)
        resolve_metric(metric)
        resolve_normalizer(normalizer)
        resolve_initializer(initializer)
        self.metric = metric
        self.normalizer = normalizer
        self.initializer = initializer
        self.listener = listener
        self.serializer = serializer

        self._halt = threading.Event()
        self.weights = None
        self.current_epoch = 0
        self.current_learn_rate = 0.0
        self.last_train_error_square = 0.0
        self.last_winner_distance = 0.0

    def __repr__(self):
        return (f"{type(self).__name__}(n_samples={len(self.train_data)}, "
                f"vec_len={self.vec_len}, n_prototypes={self.n_prototypes}, "
                f"epoch={self.current_epoch})")

    @property
    def vec_len(self):
        """ Length of every vector, label slot included. """
        return self.train_data.shape[1]

    @property
    def halted(self):
        return self._halt.is_set()

    # ---------- Logging ----------
    def _log(self, level, message, *args, exception=False):
        if self.logging_strategy == 'off':
            return
        internal = self.logging_strategy == 'internal'
        if internal:
            _install_internal_sink()
        logger.bind(lvq_internal=internal).opt(depth=1, exception=exception).log(level, message, *args)

    def _check_params(self):
        check_params(self.learn_rate, self.quit_learn_rate, self.momentum,
                     self.max_epochs, self.progress_report_period,
                     self.snapshot_period, self.logging_strategy)

    # ---------- Preparation ----------
    def normalize_input(self):
        """ Normalizes the first n_prototypes training vectors in place. """
        normalizer = resolve_normalizer(self.normalizer)
        if normalizer is None:
            return
        begin = time.perf_counter()
        for sample in range(self.n_prototypes):
            normalizer(self.train_data[sample])
        self._log("INFO", "Normalized input in {:.1f} ms with function {}",
                  1000 * (time.perf_counter() - begin), _name_of(normalizer))

    def initialize_weights(self):
        """ Allocates a fresh prototype set and fills it with the initializer.

        Resets the learned state and any pending halt request, so the
        model is ready to train from scratch afterwards.
        """
        initializer = resolve_initializer(self.initializer)
        begin = time.perf_counter()
        self.weights = np.zeros((self.n_prototypes, self.vec_len))
        initializer(self.weights, self.train_data, self.n_prototypes, self.vec_len, self.rng)
        self.current_epoch = 0
        self.current_learn_rate = 0.0
        self.last_train_error_square = 0.0
        self.last_winner_distance = 0.0
        self._halt.clear()
        self._log("INFO", "Initialized weights in {:.1f} ms with strategy {}",
                  1000 * (time.perf_counter() - begin), _name_of(initializer))

        labels, counts = np.unique(self.weights[:, -1], return_counts=True)
        self._log("DEBUG", "Prototypes of each label:")
        for label, count in zip(labels, counts):
            self._log("DEBUG", "    {}: {}", int(label), int(count))
        self._log("DEBUG", "Labels missing here were not picked by the configured initializer.")

    # ---------- Snapshots ----------
    def save_snapshot(self):
        if self.serializer is None:
            raise RuntimeError("cannot save model snapshot: no serializer set")
        self.serializer.save_snapshot(self)

    def restore_from_snapshot(self):
        if self.serializer is None:
            raise RuntimeError("cannot restore model from snapshot: no serializer set")
        self.serializer.restore_from_snapshot(self)
        self._halt.clear()

    def copy_basic_configuration(self, other):
        """ Copies the training configuration (and random source) of other. """
        if other is self:
            raise RuntimeError("self-copy")
        for name in BASIC_CONFIGURATION:
            setattr(self, name, getattr(other, name))
        self.rng = other.rng

    def copy_internals(self, other):
        """ Copies the learned state of other, deep-copying its prototypes. """
        if other is self:
            raise RuntimeError("self-copy")
        if other.train_data.shape != self.train_data.shape:
            raise RuntimeError(f"train data vectors do not match: "
                               f"{other.train_data.shape}/{self.train_data.shape}")
        if other.weights is None:
            raise RuntimeError("the other model has no weights to copy")
        for name in INTERNALS:
            setattr(self, name, getattr(other, name))
        self.weights = other.weights.copy()

    # ---------- Training ----------
    def halt(self):
        """ Requests the training loop to stop after its current epoch.

        Safe to call from any thread. The request stays pending until
        initialize_weights() or restore_from_snapshot() is called.
        """
        self._log("INFO", "Thread {} requested the train thread to halt upon its next iteration.",
                  threading.current_thread().name)
        self._halt.set()

    def _finished(self):
        return (self.current_epoch >= self.max_epochs
                or self.current_learn_rate <= self.quit_learn_rate)

    def train(self):
        if self.weights is None:
            raise RuntimeError("weights must be initialized first")
        self._check_params()
        if self.snapshot_period >= 0 and self.serializer is None:
            raise ValueError("snapshot_period requires a serializer to be set")

        if self.current_epoch == 0:
            if self.last_train_error_square != 0.0:
                raise RuntimeError(
                    f"corrupted state: epoch=0, last_train_error_square={self.last_train_error_square}"
                    " - is the snapshot this model was restored from valid?")
            self._log("INFO", "Neural network will begin training from scratch.")
            self.current_learn_rate = self.learn_rate
        else:
            if self.last_train_error_square == 0.0:
                raise RuntimeError(
                    f"corrupted state: epoch={self.current_epoch}, last_train_error_square=0.0"
                    " - is the snapshot this model was restored from valid?")
            if self._finished():
                self._log("INFO", "Neural network will not be trained: it already stopped at epoch {} "
                          "with learn rate {}.", self.current_epoch, self.current_learn_rate)
                return
            self._log("INFO", "Neural network will resume training from epoch {} (error square sum = {})",
                      self.current_epoch, self.last_train_error_square)

        metric = resolve_metric(self.metric)
        begin = time.perf_counter()
        with tqdm(total=self.max_epochs, initial=self.current_epoch, desc="LVQ epochs",
                  disable=not self.progress_bar) as pbar:
            while not self._finished():
                if self._halt.is_set():
                    self._log("INFO", "Neural network will stop training forcefully ({}) as per external request.",
                              threading.current_thread().name)
                    self._notify_listener(self.last_train_error_square, True)
                    break
                if self.yield_between_epochs:
                    time.sleep(0)

                sum_error = self._train_epoch(metric)

                if self.linear_decay:
                    self.current_learn_rate = self.learn_rate * (1.0 - self.current_epoch / self.max_epochs)
                else:
                    self.current_learn_rate *= self.momentum
                self.last_train_error_square = sum_error
                self.current_epoch += 1
                pbar.update(1)

                finished = self._finished()
                if self.progress_report_period > 0 and (
                        finished or self.current_epoch == 1
                        or self.current_epoch % self.progress_report_period == 0):
                    self._log("DEBUG", "Finished training epoch {} with learn rate = {}, current error square = {}",
                              self.current_epoch, self.current_learn_rate, sum_error)
                if self.snapshot_period > 0 and self.current_epoch % self.snapshot_period == 0:
                    self.save_snapshot()
                    self._log("DEBUG", "Saved an unfinished-state model snapshot automatically.")

                halted = self._halt.is_set()
                self._notify_listener(sum_error, finished or halted)
                if halted:
                    self._log("INFO", "Neural network stopped training after epoch {} as per external request.",
                              self.current_epoch)
                    break

        self._log("INFO", "Training completed. It took {:.1f} ms to run {} iterations "
                  "for a final error square sum of {}",
                  1000 * (time.perf_counter() - begin), self.current_epoch, self.last_train_error_square)
        if self.snapshot_period >= 0:
            self.save_snapshot()
            self._log("DEBUG", "Saved a finished-state model snapshot automatically.")

    def _train_epoch(self, metric):
        """ One pass over the training set; returns the sum of squared errors. """
        sum_error = 0.0
        rate = self.current_learn_rate
        for sample in self.train_data:
            # a row view, so the update below changes the stored prototype
            bmu = self.weights[self._find_bmu(sample, metric)]
            error = sample[:-1] - bmu[:-1]
            sum_error += float(np.dot(error, error))
            if bmu[-1] == sample[-1]:
                bmu[:-1] += error * rate
            else:
                bmu[:-1] -= error * rate
        return sum_error

    def _notify_listener(self, sum_error, finished):
        if self.listener is None:
            return
        try:
            self.listener(self, self.current_epoch, self.current_learn_rate, sum_error, finished)
        except Exception:
            self._log("ERROR", "Unhandled exception in model state listener {!r}",
                      self.listener, exception=True)

    # ---------- Inference ----------
    def _as_full_vector(self, vector):
        """ Accepts either a full vector or its features only. """
        vector = np.asarray(vector, dtype=float)
        if vector.ndim != 1 or vector.size == 0:
            raise ValueError(f"expected a non-empty vector, got shape {vector.shape}")
        if vector.size == self.vec_len - 1:
            vector = np.append(vector, 0.0)
        elif vector.size != self.vec_len:
            raise ValueError(f"expected {self.vec_len - 1} features (or {self.vec_len} with the "
                             f"label slot), got {vector.size}")
        return vector

    def _find_bmu(self, vector, metric):
        if metric in METRICS.values():
            distances = np.asarray(metric(self.weights, vector), dtype=float)
        else:
            # user metrics compare two vectors, one prototype at a time
            distances = np.array([metric(w, vector) for w in self.weights], dtype=float)
        if distances.shape != (len(self.weights),):
            raise ValueError(f"metric must return one distance per prototype, got shape {distances.shape}")
        # argmin keeps the first of several equal minima
        winner = int(np.argmin(distances))
        self.last_winner_distance = float(distances[winner])
        return winner

    def find_bmu(self, vector):
        """ Returns the row index of the prototype closest to vector. """
        if self.weights is None:
            raise RuntimeError("weights must be initialized first")
        return self._find_bmu(self._as_full_vector(vector), resolve_metric(self.metric))

    def classify(self, vector):
        """ Returns the label id of the best matching prototype. """
        vector = self._as_full_vector(vector)
        if self.last_train_error_square == 0.0:
            raise RuntimeError("the model has not been trained yet")
        return int(self.weights[self._find_bmu(vector, resolve_metric(self.metric)), -1])

    def predict(self, X):
        """ Classifies every row of X (features only or full vectors). """
        X = np.asarray(X, dtype=float)
        if X.ndim != 2:
            raise ValueError('Input is not a matrix!')
        return np.array([self.classify(row) for row in X], dtype=int)


def _name_of(func):
    return getattr(func, '__name__', type(func).__name__)
