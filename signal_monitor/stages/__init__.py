# Pipeline stages
from .stage1_icp_match import ICPMatcher
from .stage2_classifier import SignalClassifier
from .stage3_output import OutputWriter
