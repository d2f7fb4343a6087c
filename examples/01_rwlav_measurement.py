from dsse_residuals import Measurement, SESettings, Variable, build_formulation
from dsse_residuals.backends import get_backend

# Voltage magnitude measurement: 1.0 p.u. with 1% standard deviation.
vm = Variable("vm_1", lower=0.9, upper=1.1)
m1 = Measurement.normal("m1", "vm_1", mu=1.0, sigma=0.01)

form = build_formulation([m1], {"vm_1": vm}, SESettings(criterion="rwlav"))
res_m1 = form["m1"]

print("criterion:", res_m1.criterion)
for c in res_m1.constraints:
    print(" ", c)

# Pin the state and let the solver pick the residual: the relaxation is tight.
sol = get_backend("scipy.minimize").solve(form, fixed={"vm_1": 1.02})
print("res_m1 =", round(sol["res_m1"], 6), "(|1.02 - 1.0| / 0.01 = 2)")
print("max violation:", sol.stats["max_violation"])
