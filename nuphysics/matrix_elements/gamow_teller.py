from .base import MatrixElement, TransitionType


class GamowTellerMatrixElement(MatrixElement):
    """Gamow-Teller (B(GT)) transition: dsigma/dcos ~ 1 - beta cos(theta) / 3."""

    type = TransitionType.GAMOW_TELLER
    name = "Gamow-Teller"

    def cos_theta_pdf(self, cos_theta: float, beta_c_cm: float) -> float:
        return 0.5 * (1.0 - beta_c_cm * cos_theta / 3.0)

    def max_cos_theta_pdf(self, beta_c_cm: float) -> float:
        # Backward peaked
        return self.cos_theta_pdf(-1.0, beta_c_cm)
