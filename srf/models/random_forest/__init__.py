from .forest.forest import RandomForestClassifier, RandomForestRegressor
from .forest.model import RFModel
from .forest.trainer import RFTrainer
from .tree.tree import DecisionTree

__all__ = ["RandomForestClassifier", "RandomForestRegressor", "RFModel", "RFTrainer", "DecisionTree"]
