"""Top-level redemption analytics exports

Curated re-exports for notebook ergonomics. Load an upload and slice it:

    from redemption_analytics import ingest_records, build_filter_spec, apply_filters

    records = ingest_records(rows)
    filtered = apply_filters(records, build_filter_spec(retailers=["Walmart"]))

Includes ingestion, brand detection, filters and date exclusions, distributions,
time series, survey parsing, metrics/insights and snapshot export.
"""
from __future__ import annotations
import logging

# Record store / ingestion
from .data_prep.record_store import (
	ingest_records,
	frame_from_records,
	records_from_frame,
	dataset_kind,
	ingestion_report,
)
from .data_prep.field_value_utils import MalformedDateError

# Brands
from .data_processing.brand_detection import (
	BrandInfo,
	detect_brands,
	brand_mapping_from_records,
	extract_brand_names,
	products_by_brand,
	get_client_name,
)

# Filters and date exclusions
from .data_processing.filter_utils import (
	EnumConstraint,
	RangeConstraint,
	DateConstraint,
	TextConstraint,
	FilterSpec,
	ExclusionConfig,
	build_filter_spec,
	excluded_dates_for,
	apply_exclusions,
	apply_filters,
	available_filter_options,
)

# Aggregations
from .data_processing.distribution_utils import (
	distribution,
	retailer_distribution,
	product_distribution,
	demographic_distributions,
	day_of_week_distribution,
	hour_of_day_distribution,
	offer_performance,
	product_retailer_matrix,
)
from .data_processing.time_series_utils import (
	time_series,
	calculate_trend_line,
	previous_period,
	previous_year_period,
)

# Survey
from .data_processing.survey_utils import (
	SurveyQuestion,
	SurveyResults,
	parse_question,
	parse_survey,
	response_demographics,
)

# Metrics / insights
from .data_processing.metrics_utils import (
	Metrics,
	Insight,
	calculate_metrics,
	growth_metrics,
	key_insights,
)

# Snapshot / export
from .data_processing.snapshot_utils import (
	Snapshot,
	build_snapshot,
	replay_snapshot,
	verify_snapshot,
	snapshot_to_json,
	snapshot_from_json,
)
from .data_processing.export_utils import export_snapshot_to_excel, export_survey_question_csv

__all__ = [
	# Record store
	"ingest_records",
	"frame_from_records",
	"records_from_frame",
	"dataset_kind",
	"ingestion_report",
	"MalformedDateError",
	# Brands
	"BrandInfo",
	"detect_brands",
	"brand_mapping_from_records",
	"extract_brand_names",
	"products_by_brand",
	"get_client_name",
	# Filters
	"EnumConstraint",
	"RangeConstraint",
	"DateConstraint",
	"TextConstraint",
	"FilterSpec",
	"ExclusionConfig",
	"build_filter_spec",
	"excluded_dates_for",
	"apply_exclusions",
	"apply_filters",
	"available_filter_options",
	# Aggregations
	"distribution",
	"retailer_distribution",
	"product_distribution",
	"demographic_distributions",
	"day_of_week_distribution",
	"hour_of_day_distribution",
	"offer_performance",
	"product_retailer_matrix",
	"time_series",
	"calculate_trend_line",
	"previous_period",
	"previous_year_period",
	# Survey
	"SurveyQuestion",
	"SurveyResults",
	"parse_question",
	"parse_survey",
	"response_demographics",
	# Metrics
	"Metrics",
	"Insight",
	"calculate_metrics",
	"growth_metrics",
	"key_insights",
	# Snapshot / export
	"Snapshot",
	"build_snapshot",
	"replay_snapshot",
	"verify_snapshot",
	"snapshot_to_json",
	"snapshot_from_json",
	"export_snapshot_to_excel",
	"export_survey_question_csv",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
