import numpy as np
import matplotlib.pyplot as plt
from dsse_residuals import Measurement, SESettings, Variable, build_formulation
from dsse_residuals.backends import get_backend
from dsse_residuals.mixture import kl_divergence, mixture_pdf

# Active power load forecast with a skewed Weibull distribution.
pd = Variable("pd_1", lower=0.0)
m = Measurement.from_distribution("pd_1", "pd_1", "Weibull", shape=2.0, scale=0.5)
dst = m.distribution

x = np.linspace(1e-3, 1.6, 600)
fig, ax = plt.subplots()
ax.plot(x, dst.pdf(x), "k-", lw=2, label="Weibull(2, 0.5)")
for k in (1, 3, 10):
    form = build_formulation([m], {"pd_1": pd}, SESettings(criterion="gmm", number_of_gaussian=k))
    comps = form["pd_1"].components
    print(f"K={k:2d}  KL={kl_divergence(dst, comps):.2e}  variables={len(form.variables)}")
    ax.plot(x, mixture_pdf(comps, x), "--", label=f"{k} components")

sol = get_backend("scipy.minimize").solve(form, fixed={"pd_1": 0.45})
split = [sol[c.variable.name] for c in comps]
print("sum of component variables:", round(sum(split), 8))
print("residual:", round(sol["res_pd_1"], 6))

ax.set_xlabel("pd_1")
ax.set_ylabel("density")
ax.legend()
plt.show()
