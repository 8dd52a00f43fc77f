#! /usr/bin/env python

import os
import re
with open(os.path.join(os.path.dirname(__file__), '__init__.py')) as f:
    init_text = f.read()
    __version__ = re.search(r'__version__\s*=\s*[\'\"](.+?)[\'\"]', init_text).group(1)
import sys
from argparse import ArgumentParser
from typing import Optional

import onnx

from onnx2prim.ir_builder.ir import ModelIR
from onnx2prim.ir_builder.lower_from_onnx import (
    build_lowering_report,
    lower_onnx_to_ir,
    write_lowering_report,
)
from onnx2prim.utils.logging import *


def lower(
    input_onnx_file_path: Optional[str] = '',
    onnx_graph: Optional[onnx.ModelProto] = None,
    output_report_path: Optional[str] = None,
    enable_shape_inference: Optional[bool] = True,
    non_verbose: Optional[bool] = False,
    verbosity: Optional[str] = 'error',
) -> ModelIR:
    """Lower the Resize/Upsample nodes of an ONNX model into primitive IR.

    Parameters
    ----------
    input_onnx_file_path: Optional[str]
        Input onnx file path.\n
        Either input_onnx_file_path or onnx_graph must be specified.

    onnx_graph: Optional[onnx.ModelProto]
        onnx.ModelProto.\n
        If specified, input_onnx_file_path is ignored.

    output_report_path: Optional[str]
        Path of a JSON report summarizing the lowered operators and literals.\n
        No report is written if omitted.

    enable_shape_inference: Optional[bool]
        Run ONNX shape inference before lowering.\n
        Default: True

    non_verbose: Optional[bool]
        Shorthand to specify a verbosity of "error".\n
        Default: False

    verbosity: Optional[str]
        Change the level of information printed.\n
        Values are "debug", "info", "warn", and "error".\n
        Default: "error"

    Returns
    -------
    model_ir: ModelIR
        The lowered model.
    """
    if verbosity is None:
        verbosity = 'error'
    verbosity = 'error' if non_verbose else verbosity
    set_log_level(verbosity)

    if not input_onnx_file_path and onnx_graph is None:
        error(
            f'One of input_onnx_file_path or onnx_graph must be specified.'
        )
        sys.exit(1)

    if onnx_graph is None:
        if not os.path.exists(input_onnx_file_path):
            error(
                f'The specified *.onnx file does not exist. ' +
                f'input_onnx_file_path: {input_onnx_file_path}'
            )
            sys.exit(1)
        onnx_graph = onnx.load(input_onnx_file_path)

    output_file_name = 'model'
    if input_onnx_file_path:
        output_file_name = os.path.splitext(os.path.basename(input_onnx_file_path))[0]

    model_ir = lower_onnx_to_ir(
        onnx_graph=onnx_graph,
        output_file_name=output_file_name,
        verbosity=verbosity,
        enable_shape_inference=enable_shape_inference,
    )

    if output_report_path:
        report = build_lowering_report(model_ir)
        write_lowering_report(
            report=report,
            output_report_path=output_report_path,
        )
        info(Color.GREEN(f'Lowering report output complete!'), output_report_path)

    return model_ir


def main():
    parser = ArgumentParser()
    iV_group = parser.add_mutually_exclusive_group(required=True)
    iV_group.add_argument(
        '-i',
        '--input_onnx_file_path',
        type=str,
        help='Input onnx file path.'
    )
    iV_group.add_argument(
        '-V',
        '--version',
        action='store_true',
        help='Show version and exit.'
    )
    parser.add_argument(
        '-o',
        '--output_report_path',
        type=str,
        help=\
            'Output path of the JSON lowering report. ' +
            'Default: {input file name}_lowering.json next to the input file'
    )
    parser.add_argument(
        '-dsi',
        '--disable_shape_inference',
        action='store_true',
        help='Skip ONNX shape inference before lowering.'
    )
    parser.add_argument(
        '-n',
        '--non_verbose',
        action='store_true',
        help='Shorthand to specify a verbosity of "error".'
    )
    parser.add_argument(
        '-v',
        '--verbosity',
        type=str,
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help=\
            'Change the level of information printed. ' +
            'Default: "info"'
    )
    args = parser.parse_args()

    # Print version
    if args.version:
        print(__version__)
        sys.exit(0)

    output_report_path = args.output_report_path
    if not output_report_path:
        output_report_path = \
            f'{os.path.splitext(args.input_onnx_file_path)[0]}_lowering.json'

    lower(
        input_onnx_file_path=args.input_onnx_file_path,
        output_report_path=output_report_path,
        enable_shape_inference=not args.disable_shape_inference,
        non_verbose=args.non_verbose,
        verbosity=args.verbosity,
    )


if __name__ == '__main__':
    main()
