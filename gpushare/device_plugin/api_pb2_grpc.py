# Client and server classes for the services in api.proto.

import grpc

from . import api_pb2 as api__pb2


class RegistrationStub(object):
    """Registration is the service advertised by kubelet."""

    def __init__(self, channel):
        self.Register = channel.unary_unary(
            '/v1beta1.Registration/Register',
            request_serializer=api__pb2.RegisterRequest.SerializeToString,
            response_deserializer=api__pb2.Empty.FromString,
        )


class RegistrationServicer(object):
    """Registration is the service advertised by kubelet."""

    def Register(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details('Method not implemented!')
        raise NotImplementedError('Method not implemented!')


def add_RegistrationServicer_to_server(servicer, server):
    rpc_method_handlers = {
        'Register': grpc.unary_unary_rpc_method_handler(
            servicer.Register,
            request_deserializer=api__pb2.RegisterRequest.FromString,
            response_serializer=api__pb2.Empty.SerializeToString,
        ),
    }
    generic_handler = grpc.method_handlers_generic_handler('v1beta1.Registration', rpc_method_handlers)
    server.add_generic_rpc_handlers((generic_handler,))


class DevicePluginStub(object):
    """DevicePlugin is the service advertised by device plugins."""

    def __init__(self, channel):
        self.GetDevicePluginOptions = channel.unary_unary(
            '/v1beta1.DevicePlugin/GetDevicePluginOptions',
            request_serializer=api__pb2.Empty.SerializeToString,
            response_deserializer=api__pb2.DevicePluginOptions.FromString,
        )
        self.ListAndWatch = channel.unary_stream(
            '/v1beta1.DevicePlugin/ListAndWatch',
            request_serializer=api__pb2.Empty.SerializeToString,
            response_deserializer=api__pb2.ListAndWatchResponse.FromString,
        )
        self.GetPreferredAllocation = channel.unary_unary(
            '/v1beta1.DevicePlugin/GetPreferredAllocation',
            request_serializer=api__pb2.PreferredAllocationRequest.SerializeToString,
            response_deserializer=api__pb2.PreferredAllocationResponse.FromString,
        )
        self.Allocate = channel.unary_unary(
            '/v1beta1.DevicePlugin/Allocate',
            request_serializer=api__pb2.AllocateRequest.SerializeToString,
            response_deserializer=api__pb2.AllocateResponse.FromString,
        )
        self.PreStartContainer = channel.unary_unary(
            '/v1beta1.DevicePlugin/PreStartContainer',
            request_serializer=api__pb2.PreStartContainerRequest.SerializeToString,
            response_deserializer=api__pb2.PreStartContainerResponse.FromString,
        )


class DevicePluginServicer(object):
    """DevicePlugin is the service advertised by device plugins."""

    def GetDevicePluginOptions(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details('Method not implemented!')
        raise NotImplementedError('Method not implemented!')

    def ListAndWatch(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details('Method not implemented!')
        raise NotImplementedError('Method not implemented!')

    def GetPreferredAllocation(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details('Method not implemented!')
        raise NotImplementedError('Method not implemented!')

    def Allocate(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details('Method not implemented!')
        raise NotImplementedError('Method not implemented!')

    def PreStartContainer(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details('Method not implemented!')
        raise NotImplementedError('Method not implemented!')


def add_DevicePluginServicer_to_server(servicer, server):
    rpc_method_handlers = {
        'GetDevicePluginOptions': grpc.unary_unary_rpc_method_handler(
            servicer.GetDevicePluginOptions,
            request_deserializer=api__pb2.Empty.FromString,
            response_serializer=api__pb2.DevicePluginOptions.SerializeToString,
        ),
        'ListAndWatch': grpc.unary_stream_rpc_method_handler(
            servicer.ListAndWatch,
            request_deserializer=api__pb2.Empty.FromString,
            response_serializer=api__pb2.ListAndWatchResponse.SerializeToString,
        ),
        'GetPreferredAllocation': grpc.unary_unary_rpc_method_handler(
            servicer.GetPreferredAllocation,
            request_deserializer=api__pb2.PreferredAllocationRequest.FromString,
            response_serializer=api__pb2.PreferredAllocationResponse.SerializeToString,
        ),
        'Allocate': grpc.unary_unary_rpc_method_handler(
            servicer.Allocate,
            request_deserializer=api__pb2.AllocateRequest.FromString,
            response_serializer=api__pb2.AllocateResponse.SerializeToString,
        ),
        'PreStartContainer': grpc.unary_unary_rpc_method_handler(
            servicer.PreStartContainer,
            request_deserializer=api__pb2.PreStartContainerRequest.FromString,
            response_serializer=api__pb2.PreStartContainerResponse.SerializeToString,
        ),
    }
    generic_handler = grpc.method_handlers_generic_handler('v1beta1.DevicePlugin', rpc_method_handlers)
    server.add_generic_rpc_handlers((generic_handler,))
