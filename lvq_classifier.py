"""
scikit-learn estimator around the LVQ training engine.

The engine works on flat vectors with the label id in the last slot;
this wrapper takes the usual (X, y) pair instead, maps arbitrary labels
to ids and back, and can therefore be used with sklearn's model
selection tools.
"""

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.utils.validation import check_is_fitted

from lvq import LVQNN
from lvq_normalization import resolve_normalizer


class LVQClassifier(BaseEstimator, ClassifierMixin):
    """ Nearest-prototype classifier trained with LVQ1.

    Attributes
    ----------
    n_prototypes: int
        Total number of prototypes; must not exceed the number of
        training samples.
    max_epochs: int (optional, default=1000)
        Maximum number of training epochs.
    learn_rate: float (optional, default=0.3)
    quit_learn_rate: float (optional, default=0.001)
    momentum: float (optional, default=0.98)
        Geometric learn rate decay, unless linear_decay is set.
    linear_decay: bool (optional, default=False)
    metric: str or callable (optional, default='euclidean')
    normalizer: None, str or callable (optional, default=None)
        Applied to every training and test vector.
    initializer: str or callable (optional, default='n_random_rational')
        The label-balanced default makes sure every class gets prototypes
        even for skewed label distributions.
    random_state: None, int or RandomState (optional)
    progress_bar: bool (optional, default=False)
    logging_strategy: str (optional, default='default')
    classes_: array_like
        The distinct labels seen in fit(). This is not set by the user but
        during fit().
    model_: LVQNN
        The trained engine. This is not set by the user but during fit().
    prototypes_: array_like
        (n_prototypes, n_features) prototype features after training.
    prototype_labels_: array_like
        Label of every prototype, in terms of classes_.
    loss_: list
        Sum of squared errors of every epoch of the last fit().
    n_epochs_: int
        Number of epochs the last fit() ran.
    """

    def __init__(self, n_prototypes, max_epochs=1000, learn_rate=0.3,
                 quit_learn_rate=0.001, momentum=0.98, linear_decay=False,
                 metric='euclidean', normalizer=None,
                 initializer='n_random_rational', random_state=None,
                 progress_bar=False, logging_strategy='default'):
        self.n_prototypes = n_prototypes
        self.max_epochs = max_epochs
        self.learn_rate = learn_rate
        self.quit_learn_rate = quit_learn_rate
        self.momentum = momentum
        self.linear_decay = linear_decay
        self.metric = metric
        self.normalizer = normalizer
        self.initializer = initializer
        self.random_state = random_state
        self.progress_bar = progress_bar
        self.logging_strategy = logging_strategy

    def _labeled(self, X, label_ids):
        data = np.column_stack([X, np.asarray(label_ids, dtype=float)])
        normalize = resolve_normalizer(self.normalizer)
        if normalize is not None:
            for row in data:
                normalize(row)
        return data

    def _record_loss(self, model, epoch, learn_rate, error_square, finished):
        self.loss_.append(error_square)

    def fit(self, X, y):
        """ Trains the prototypes on feature matrix X with labels y. """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y)
        if X.ndim != 2:
            raise ValueError('Input is not a matrix!')
        if y.ndim != 1 or len(y) != len(X):
            raise ValueError(f"y must be a vector with one label per row of X, got shape {y.shape}")
        self.n_features_in_ = X.shape[1]
        self.classes_, label_ids = np.unique(y, return_inverse=True)

        self.loss_ = []
        self.model_ = LVQNN(
            self._labeled(X, label_ids), self.n_prototypes,
            learn_rate=self.learn_rate,
            quit_learn_rate=self.quit_learn_rate,
            linear_decay=self.linear_decay,
            momentum=self.momentum,
            max_epochs=self.max_epochs,
            random_state=self.random_state,
            metric=self.metric,
            initializer=self.initializer,
            listener=self._record_loss,
            logging_strategy=self.logging_strategy,
            progress_bar=self.progress_bar,
        )
        self.model_.initialize_weights()
        self.model_.train()
        if self.model_.last_train_error_square == 0.:
            # the engine treats a zero error square sum as untrained
            raise ValueError('Training ended with a zero error square sum: every training vector '
                             'coincides with a prototype. Use fewer prototypes than distinct '
                             'training vectors.')

        self.n_epochs_ = self.model_.current_epoch
        self.prototypes_ = self.model_.weights[:, :-1].copy()
        self.prototype_labels_ = self.classes_[self.model_.weights[:, -1].astype(int)]
        return self

    def predict(self, X):
        """ Predicts the label of the closest prototype for every row of X. """
        check_is_fitted(self, 'model_')
        X = np.asarray(X, dtype=float)
        if X.ndim != 2:
            raise ValueError('Input is not a matrix!')
        if X.shape[1] != self.n_features_in_:
            raise ValueError(f"X has {X.shape[1]} features, but the model was fitted "
                             f"with {self.n_features_in_}")
        return self.classes_[self.model_.predict(self._labeled(X, np.zeros(len(X))))]
