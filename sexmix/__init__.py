"""sexmix: RNA-seq sample sex inference from Y-chromosome and XIST read ratios.

An unsupervised two-component Beta mixture, fitted by EM with a
gradient-based M-step, assigns every sample a posterior probability of
being female or male.
"""

__version__ = "1.0.0-dev"
