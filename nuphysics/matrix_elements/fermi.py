from .base import MatrixElement, TransitionType


class FermiMatrixElement(MatrixElement):
    """Fermi (B(F)) transition: dsigma/dcos ~ 1 + beta cos(theta)."""

    type = TransitionType.FERMI
    name = "Fermi"

    def cos_theta_pdf(self, cos_theta: float, beta_c_cm: float) -> float:
        return 0.5 * (1.0 + beta_c_cm * cos_theta)

    def max_cos_theta_pdf(self, beta_c_cm: float) -> float:
        # Forward peaked
        return self.cos_theta_pdf(1.0, beta_c_cm)
