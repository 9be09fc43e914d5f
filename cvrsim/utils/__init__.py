from .tools import (get_time_points,
                    get_block_index,
                    get_block_pattern,
                    get_response_factor,
                    get_stimulus_onsets,
                    get_normalized_time,
                    get_polynomial_drift,
                    extract_end_tidal,
                    get_display_range,
                    get_ss)
