"""
Simulate a CO2 block-design experiment
======================================
In a cerebrovascular reactivity (CVR) experiment the subject alternates
between breathing normal air and CO2-enriched air in 60 s blocks. The
arterial CO2 rises in the enriched blocks, vessels dilate and the BOLD
signal goes up.

*cvrsim* simulates both the CO2 trace and the MRI signal of such an
experiment, and then fits a GLM to the simulated MRI signal, the same way
you would analyse real data.
"""

import cvrsim
from cvrsim.config import Configuration

##############################################################################
# Set up the experiment
# ---------------------
# The defaults describe a 300 s run, sampled every 2 s, with a response of
# 25 units on top of a baseline of 1200. Here we make the response a bit
# more sluggish and add some more noise.
config = Configuration(response_shape='exponential',
                       response_rise_time=10.,
                       response_fall_time=15.,
                       mri_noise_amplitude=8.)

simulator = cvrsim.Simulator(config, seed=42)


@simulator.subscribe
def report(output):
    print('{:>20}: {:6.2f} % signal change, SNR {:6.1f}, CNR {:5.2f}'.format(
        output.change_category.value,
        output.percent_change,
        output.snr,
        output.cnr))


output = simulator.recompute()

##############################################################################
# The simulated signals come as DataFrames indexed by time
print(output.get_mri_dataframe().head())
print(output.get_end_tidal_dataframe().head())

##############################################################################
# And the betas are labeled
print(output.get_betas())

##############################################################################
# Analyse with a different model
# ------------------------------
# Changing only analysis settings refits the model on the same simulated
# signal.
config.analysis_model = 'exponential'
config.analysis_rise_time = 10.
config.analysis_fall_time = 15.
simulator.recompute()

##############################################################################
# A finite impulse response (FIR) model makes no assumption on the shape
# of the response at all. Every 2 s after block onset gets its own
# regressor.
config.analysis_model = 'fir'
config.fir_response_method = 'time_window'
output = simulator.recompute()

print(output.get_betas().head(10))
print('Peak of the FIR response at {:.0f} s'.format(output.fir_peak_time))

##############################################################################
# Another noise realization
# -------------------------
# The noise is kept fixed across updates, so that changes in the metrics
# reflect the settings. Draw a new realization explicitly:
simulator.regenerate_noise()

##############################################################################
# Lowering the noise amplitude rescales the same realization
config.mri_noise_amplitude = 2.
simulator.recompute()
