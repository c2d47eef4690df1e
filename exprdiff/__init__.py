"""Expression graphs with reverse-mode gradients, Hessian-vector products and nonlinear-structure detection, plus lazily evaluated expressions."""

__version__ = "0.1.0"
__all__ = ["tape", "edges", "node", "binary", "unary", "expression"]